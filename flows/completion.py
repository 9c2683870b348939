"""
NyayaGPT Completion Service

The completion service is the only external call a flow makes. A flow hands
it a CompletionRequest (prompt, output shape, optional temperature, media
and tools) and receives the raw model text, which the flow then validates
against its output model.

IMPLEMENTATIONS:
  - OpenAICompletionService: chat completions in JSON mode via AsyncOpenAI
  - Test doubles implement CompletionService.complete() directly

TOOLS:
  A request may carry Tools. When the model asks for one, the service runs
  the caller-provided handler and feeds the JSON result back to the model
  before it produces the final answer.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from flows.errors import GenerationError
from shared.models.media import MediaAttachment

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


@dataclass
class Tool:
    """A lookup the model may call before producing its final answer."""

    name: str
    description: str
    parameters: type[BaseModel]
    handler: ToolHandler

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.model_json_schema(),
            },
        }

    async def call(self, arguments: str) -> Any:
        """Validate the model's arguments and run the handler."""
        params = self.parameters.model_validate_json(arguments or "{}")
        result = self.handler(params)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass
class CompletionRequest:
    """Everything a completion service needs to answer one flow invocation."""

    prompt: str
    output_model: type[BaseModel]
    system_prompt: str = ""
    temperature: Optional[float] = None
    media: list[MediaAttachment] = field(default_factory=list)
    tools: list[Tool] = field(default_factory=list)
    flow_name: str = "completion"

    def output_schema(self) -> dict[str, Any]:
        return self.output_model.model_json_schema()

    def instructions(self) -> str:
        """System prompt followed by the JSON output contract."""
        schema = json.dumps(self.output_schema(), indent=2)
        return (
            f"{self.system_prompt}\n\n"
            "OUTPUT FORMAT:\n"
            "Return a single JSON object that matches this JSON schema exactly. "
            "Do not wrap it in markdown.\n"
            f"{schema}"
        ).strip()


class CompletionService(ABC):
    """Opaque generative completion service."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> str:
        """
        Produce raw model output for the request.

        Raises:
            GenerationError: on any service failure.
        """
        pass


@dataclass
class CompletionConfig:
    """Configuration for the OpenAI completion service."""

    model: str = "gpt-4o"
    max_tokens: int = 4096
    max_tool_rounds: int = 3

    @classmethod
    def from_env(cls) -> CompletionConfig:
        """Load configuration from environment variables."""
        return cls(
            model=os.getenv("NYAYA_MODEL", "gpt-4o"),
            max_tokens=int(os.getenv("NYAYA_MAX_TOKENS", "4096")),
            max_tool_rounds=int(os.getenv("NYAYA_MAX_TOOL_ROUNDS", "3")),
        )


class OpenAICompletionService(CompletionService):
    """
    Completion service backed by OpenAI chat completions.

    Requests run in JSON mode. The client is built with ``max_retries=0``:
    a failed call is surfaced to the caller, never retried.
    """

    def __init__(
        self,
        config: Optional[CompletionConfig] = None,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.config = config or CompletionConfig.from_env()
        if client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError(
                    "OPENAI_API_KEY environment variable is required. "
                    "Please set it before initializing the OpenAICompletionService."
                )
            client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._client = client

    async def complete(self, request: CompletionRequest) -> str:
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": request.instructions()},
            {"role": "user", "content": self._user_content(request)},
        ]
        params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.tools:
            params["tools"] = [tool.to_openai() for tool in request.tools]
        tools = {tool.name: tool for tool in request.tools}

        try:
            for _ in range(self.config.max_tool_rounds + 1):
                response = await self._client.chat.completions.create(**params)

                if not response.choices:
                    raise GenerationError(request.flow_name, "LLM returned no choices")
                message = response.choices[0].message

                tool_calls = message.tool_calls if tools else None
                if tool_calls:
                    messages.append({
                        "role": "assistant",
                        "content": message.content,
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {
                                    "name": call.function.name,
                                    "arguments": call.function.arguments,
                                },
                            }
                            for call in tool_calls
                        ],
                    })
                    for call in tool_calls:
                        messages.append({
                            "role": "tool",
                            "tool_call_id": call.id,
                            "content": await self._run_tool(tools, call),
                        })
                    continue

                if not message.content:
                    raise GenerationError(request.flow_name, "LLM returned empty or invalid response")
                return message.content

        except openai.OpenAIError as e:
            logger.error(f"Completion request for {request.flow_name} failed: {e}")
            raise GenerationError(request.flow_name, f"Completion service error: {e}") from e

        raise GenerationError(
            request.flow_name,
            f"LLM did not answer within {self.config.max_tool_rounds} tool rounds",
        )

    def _user_content(self, request: CompletionRequest) -> Union[str, list[dict[str, Any]]]:
        """Plain prompt, or prompt plus media parts when documents are attached."""
        if not request.media:
            return request.prompt

        parts: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
        for media in request.media:
            if media.is_image:
                parts.append({"type": "image_url", "image_url": {"url": media.to_data_uri()}})
            else:
                parts.append({
                    "type": "file",
                    "file": {
                        "filename": media.filename or "document",
                        "file_data": media.to_data_uri(),
                    },
                })
        return parts

    async def _run_tool(self, tools: dict[str, Tool], call: Any) -> str:
        """Run one tool call; errors are reported back to the model as JSON."""
        tool = tools.get(call.function.name)
        if tool is None:
            return json.dumps({"error": f"Unknown tool: {call.function.name}"})
        try:
            result = await tool.call(call.function.arguments)
        except ValidationError as e:
            return json.dumps({"error": f"Invalid arguments: {e}"})

        if isinstance(result, BaseModel):
            result = result.model_dump(mode="json")
        return json.dumps(result, default=str)
