"""
NyayaGPT Base Flow Class

This module defines the base architecture for NyayaGPT's prompt flows. Every
flow (contract review, argument drafting, research, search, summarization,
document chat) inherits from this base.

ARCHITECTURE:
  - Each flow declares a pydantic input model and output model
  - render_prompt() is a pure function of the validated input
  - The completion service is injected, never a module-level singleton
  - Each invocation builds its own FlowTrace; flows keep no state between calls

INVOCATION:
  1. Validate input (FlowInputError, no external call on failure)
  2. Render prompt, collect media and tools
  3. Call the completion service once
  4. Validate the response against the output model (GenerationError on failure)
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from flows.completion import CompletionRequest, CompletionService, Tool
from flows.errors import FlowInputError, GenerationError
from shared.models.filters import FilterSet
from shared.models.media import MediaAttachment, parse_data_uri

# Load environment variables
load_dotenv()

# Configure logging
logger = logging.getLogger(__name__)

# Type variables for flow input/output
InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

_FENCE_START = re.compile(r"^```(?:json)?\s*")
_FENCE_END = re.compile(r"\s*```$")


def strip_code_fences(content: str) -> str:
    """Remove a markdown code fence wrapped around model output."""
    content = _FENCE_START.sub("", content.strip())
    return _FENCE_END.sub("", content.strip())


def render_document_section(
    heading: str,
    data_uri: Optional[str],
    filename: Optional[str] = None,
) -> str:
    """
    Prompt section for an attached document, or "" when there is none.

    Text documents are inlined; other types are referenced by name and sent
    as attachments (see document_attachments).
    """
    if not data_uri:
        return ""
    media = parse_data_uri(data_uri, filename)
    if media.is_text:
        return f"{heading}:\n{media.as_text()}\n"
    return f"{heading}:\n[Attached document: {filename or 'document'} ({media.mime_type})]\n"


def document_attachments(data_uri: Optional[str], filename: Optional[str] = None) -> list[MediaAttachment]:
    """Non-text documents that travel as completion attachments."""
    if not data_uri:
        return []
    media = parse_data_uri(data_uri, filename)
    return [] if media.is_text else [media]


@dataclass
class FlowConfig:
    """Configuration for NyayaGPT flows."""

    # Search behaviour
    search_strategy: str = "catalog"  # "catalog" | "generated"
    search_rerank: bool = False
    search_limit: int = 5

    # Logging
    log_level: str = "INFO"
    trace_enabled: bool = True

    @classmethod
    def from_env(cls) -> FlowConfig:
        """Load configuration from environment variables."""
        return cls(
            search_strategy=os.getenv("NYAYA_SEARCH_STRATEGY", "catalog").lower(),
            search_rerank=os.getenv("NYAYA_SEARCH_RERANK", "false").lower() == "true",
            search_limit=int(os.getenv("NYAYA_SEARCH_LIMIT", "5")),
            log_level=os.getenv("NYAYA_LOG_LEVEL", "INFO"),
            trace_enabled=os.getenv("NYAYA_TRACE_ENABLED", "true").lower() == "true",
        )


@dataclass
class FlowTrace:
    """Trace record of one flow invocation."""

    flow_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    input_summary: Optional[str] = None
    output_summary: Optional[str] = None
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    llm_calls: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        if self.completed_at is None:
            return None
        delta = self.completed_at - self.started_at
        return delta.total_seconds() * 1000


@dataclass
class FlowRun(Generic[OutputT]):
    """A validated flow output together with the trace of the call that produced it."""

    output: OutputT
    trace: FlowTrace


class CatalogToolClient:
    """
    Client for the legal catalog tools.

    Wraps the MCP server's catalog functions so flows can call them directly.
    Create one per invocation: calls are appended to the given call log,
    which is normally the invocation's ``FlowTrace.tool_calls``.
    """

    def __init__(self, call_log: Optional[list[dict[str, Any]]] = None):
        self._call_log: list[dict[str, Any]] = call_log if call_log is not None else []

    def get_call_log(self) -> list[dict[str, Any]]:
        """Get log of all tool calls for tracing."""
        return self._call_log.copy()

    def search_legal_catalog(
        self,
        query: str,
        filters: Optional[FilterSet] = None,
        limit: int = 5,
    ) -> dict[str, Any]:
        """
        Substring and statute-tag search over the catalog.

        Returns:
            {results, total_matches, query}
        """
        from mcp_server.server import search_legal_catalog_impl

        self._call_log.append({
            "tool": "search_legal_catalog",
            "timestamp": datetime.now().isoformat(),
            "input": {
                "query": query,
                "filters": sorted(filters.active()) if filters else [],
                "limit": limit,
            },
        })

        result = search_legal_catalog_impl(query, filters, limit)

        self._call_log[-1]["output"] = {"total_matches": result.get("total_matches", 0)}
        return result

    def get_catalog_document(self, docid: str) -> Optional[dict[str, Any]]:
        """Fetch one catalog record by docid."""
        from mcp_server.server import get_catalog_document_impl

        self._call_log.append({
            "tool": "get_catalog_document",
            "timestamp": datetime.now().isoformat(),
            "input": {"docid": docid},
        })

        result = get_catalog_document_impl(docid)

        self._call_log[-1]["output"] = {"found": result is not None}
        return result

    def resolve_case_citation(self, query: str) -> Optional[dict[str, Any]]:
        """Resolve a reporter citation in the query to its known case."""
        from mcp_server.server import resolve_case_citation_impl

        self._call_log.append({
            "tool": "resolve_case_citation",
            "timestamp": datetime.now().isoformat(),
            "input": {"query": query},
        })

        result = resolve_case_citation_impl(query)

        self._call_log[-1]["output"] = {"title": result["title"] if result else None}
        return result


class BaseFlow(ABC, Generic[InputT, OutputT]):
    """
    Base class for NyayaGPT prompt flows.

    Each flow inherits from this base and provides:
      - `name`: Flow identifier
      - `input_model` / `output_model`: the declared shapes
      - `render_prompt()`: pure prompt template rendering
      - `_get_system_prompt()`: persona and standing instructions
      - `temperature`: fixed sampling temperature, or None for the service default

    The base class provides:
      - Input validation before any external call
      - Output validation of the completion response
      - Logging and tracing per invocation
    """

    input_model: type[InputT]
    output_model: type[OutputT]
    temperature: Optional[float] = None

    def __init__(
        self,
        completion: CompletionService,
        config: Optional[FlowConfig] = None,
    ):
        """
        Initialize the flow.

        Args:
            completion: Completion service used for every invocation
            config: Flow configuration (loaded from the environment if not provided)
        """
        self.completion = completion
        self.config = config or FlowConfig.from_env()

        # Configure logging for this flow
        self.logger = logging.getLogger(f"nyaya.flows.{self.name}")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))

    @property
    @abstractmethod
    def name(self) -> str:
        """Flow identifier (e.g., 'contract_review')."""
        pass

    @abstractmethod
    def render_prompt(self, data: InputT) -> str:
        """Render the prompt template for validated input. Must not perform I/O."""
        pass

    @abstractmethod
    def _get_system_prompt(self) -> str:
        """Get the system prompt for this flow's completion calls."""
        pass

    def get_media(self, data: InputT) -> list[MediaAttachment]:
        """Binary documents to attach to the completion request."""
        return []

    def get_tools(self, data: InputT, trace: FlowTrace) -> list[Tool]:
        """Lookups the completion service may call before answering."""
        return []

    def finalize(self, output: OutputT, data: InputT, trace: FlowTrace) -> OutputT:
        """Post-process a validated output. Default is identity."""
        return output

    def validate_input(self, payload: Union[InputT, Mapping[str, Any]]) -> InputT:
        """Validate a model instance or mapping against the input model."""
        if isinstance(payload, self.input_model):
            return payload
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True)
        try:
            return self.input_model.model_validate(payload)
        except ValidationError as e:
            self.logger.info(f"Rejected {self.name} input: {e.error_count()} validation error(s)")
            raise FlowInputError.from_validation_error(self.name, e) from e

    def parse_output(self, raw: str) -> OutputT:
        """Validate raw completion text against the output model."""
        try:
            return self.output_model.model_validate_json(strip_code_fences(raw))
        except ValidationError as e:
            raise GenerationError(
                self.name,
                f"LLM output does not match {self.output_model.__name__}: {e}",
            ) from e

    def build_request(self, data: InputT, trace: FlowTrace) -> CompletionRequest:
        return CompletionRequest(
            prompt=self.render_prompt(data),
            output_model=self.output_model,
            system_prompt=self._get_system_prompt(),
            temperature=self.temperature,
            media=self.get_media(data),
            tools=self.get_tools(data, trace),
            flow_name=self.name,
        )

    async def invoke(self, payload: Union[InputT, Mapping[str, Any]]) -> FlowRun[OutputT]:
        """
        Execute the flow.

        Args:
            payload: Input model instance or its mapping form

        Returns:
            FlowRun with the validated output and the invocation trace

        Raises:
            FlowInputError: input failed validation (no completion call made)
            GenerationError: completion failed or its output did not validate
        """
        data = self.validate_input(payload)
        trace = self._start_trace(self._summarize_input(data))

        try:
            output = self.finalize(await self._generate(data, trace), data, trace)
        except GenerationError as e:
            self._complete_trace(trace, error=str(e))
            raise
        except Exception as e:
            self._complete_trace(trace, error=str(e))
            self.logger.exception(f"Completion call failed for {self.name}")
            raise GenerationError(self.name, f"Completion service error: {e}") from e

        self._complete_trace(trace, output_summary=self._summarize_output(output))
        return FlowRun(output=output, trace=trace)

    async def run(self, payload: Union[InputT, Mapping[str, Any]]) -> OutputT:
        """Execute the flow and return only the validated output."""
        result = await self.invoke(payload)
        return result.output

    async def _generate(self, data: InputT, trace: FlowTrace) -> OutputT:
        """One completion call, validated against the output model."""
        request = self.build_request(data, trace)
        trace.llm_calls.append({
            "timestamp": datetime.now().isoformat(),
            "prompt_chars": len(request.prompt),
            "temperature": request.temperature,
            "media": len(request.media),
            "tools": [tool.name for tool in request.tools],
        })
        raw = await self.completion.complete(request)
        return self.parse_output(raw)

    def _summarize_input(self, data: InputT) -> str:
        return ", ".join(
            f"{key}={len(value)} chars" if isinstance(value, str) else f"{key}={value!r}"
            for key, value in data.model_dump(exclude_none=True).items()
        )

    def _summarize_output(self, output: OutputT) -> str:
        return f"{self.output_model.__name__} with fields {sorted(output.model_fields_set)}"

    def _start_trace(self, input_summary: Optional[str] = None) -> FlowTrace:
        """Start a new trace for one flow invocation."""
        trace = FlowTrace(
            flow_name=self.name,
            started_at=datetime.now(),
            input_summary=input_summary,
        )
        self.logger.debug(f"Started trace for {self.name} flow")
        return trace

    def _complete_trace(
        self,
        trace: FlowTrace,
        output_summary: Optional[str] = None,
        error: Optional[str] = None,
    ) -> FlowTrace:
        """Complete an invocation trace and log it."""
        trace.completed_at = datetime.now()
        trace.output_summary = output_summary
        trace.error = error

        if self.config.trace_enabled:
            duration = trace.duration_ms()
            if error:
                self.logger.warning(f"{self.name} flow failed after {duration:.1f}ms: {error}")
            else:
                self.logger.info(
                    f"Completed {self.name} flow in {duration:.1f}ms "
                    f"(LLM calls: {len(trace.llm_calls)}, tool calls: {len(trace.tool_calls)})"
                )

        return trace
