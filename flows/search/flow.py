"""
NyayaGPT Search Flow

Returns an ordered list of legal documents for a query and statute filters.
Two strategies exist and one is chosen explicitly by configuration
(NYAYA_SEARCH_STRATEGY); they are alternatives, not layers:

  catalog (default)
    Literal substring and statute-tag filtering over the fixed legal catalog.
    No LLM call unless re-ranking is enabled (NYAYA_SEARCH_RERANK=true), in
    which case the model orders the catalog hits and may call the
    search_legal_catalog tool for further lookups. Every returned record
    satisfies the filters.

  generated
    The model free-generates 3-5 plausible Indian Kanoon results. Nothing is
    looked up locally.
"""

from __future__ import annotations

import json
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from flows.base import BaseFlow, CatalogToolClient, FlowConfig, FlowTrace, strip_code_fences
from flows.completion import CompletionRequest, CompletionService, Tool
from flows.errors import GenerationError
from shared.models import (
    LegalSearchInput,
    RankedDocIds,
    SearchResult,
    SearchResults,
)

# Upper bound on catalog hits considered before the result limit is applied
CANDIDATE_POOL = 50


class CatalogSearchArgs(BaseModel):
    """Arguments of the search_legal_catalog tool."""

    query: str = Field(min_length=1, description="Words or phrase to look up in the catalog.")


def _filters_json(data: LegalSearchInput) -> str:
    return json.dumps(data.filters.model_dump(by_alias=True, exclude_none=True))


class CatalogSearchFlow(BaseFlow[LegalSearchInput, SearchResults]):
    """Search over the fixed legal catalog, optionally re-ranked by the model."""

    input_model = LegalSearchInput
    output_model = SearchResults

    def __init__(
        self,
        completion: CompletionService,
        config: Optional[FlowConfig] = None,
        catalog_factory: Callable[..., CatalogToolClient] = CatalogToolClient,
    ):
        super().__init__(completion, config)
        self.catalog_factory = catalog_factory

    @property
    def name(self) -> str:
        return "legal_search"

    def _get_system_prompt(self) -> str:
        return (
            "You are an expert Indian legal researcher. You order search results "
            "from a legal catalog by how well they answer the user's query."
        )

    def render_prompt(self, data: LegalSearchInput) -> str:
        hits = self.catalog_factory().search_legal_catalog(data.query, data.filters, CANDIDATE_POOL)
        return self.render_rerank_prompt(data, [SearchResult.model_validate(r) for r in hits["results"]])

    def render_rerank_prompt(self, data: LegalSearchInput, candidates: list[SearchResult]) -> str:
        listing = "\n".join(
            f"- docid: {c.docid}\n  title: {c.title}\n  snippet: {c.snippet}"
            for c in candidates
        )
        return f"""Order the candidate documents below from most to least relevant to the query.

You may call the search_legal_catalog tool to look up other documents in the
same catalog; any docid it returns may also be ranked. Only use docids that
appear in the candidates or in tool results.

Query: {data.query}
Filters: {_filters_json(data)}

Candidates:
{listing}

Return the ordered docids in 'docids'."""

    async def _generate(self, data: LegalSearchInput, trace: FlowTrace) -> SearchResults:
        catalog = self.catalog_factory(call_log=trace.tool_calls)
        hits = catalog.search_legal_catalog(data.query, data.filters, CANDIDATE_POOL)
        candidates = [SearchResult.model_validate(r) for r in hits["results"]]

        if not self.config.search_rerank or len(candidates) < 2:
            return SearchResults(results=candidates[: self.config.search_limit])

        ranked = await self._rerank(data, candidates, catalog, trace)
        return SearchResults(results=ranked[: self.config.search_limit])

    async def _rerank(
        self,
        data: LegalSearchInput,
        candidates: list[SearchResult],
        catalog: CatalogToolClient,
        trace: FlowTrace,
    ) -> list[SearchResult]:
        pool: dict[str, SearchResult] = {c.docid: c for c in candidates}

        def lookup(args: CatalogSearchArgs) -> dict:
            # Filters come from the user's input, never from the model
            found = catalog.search_legal_catalog(args.query, data.filters, CANDIDATE_POOL)
            for record in found["results"]:
                pool.setdefault(record["docid"], SearchResult.model_validate(record))
            return found

        request = CompletionRequest(
            prompt=self.render_rerank_prompt(data, candidates),
            output_model=RankedDocIds,
            system_prompt=self._get_system_prompt(),
            temperature=self.temperature,
            tools=[
                Tool(
                    name="search_legal_catalog",
                    description="Search the legal catalog by words or phrase. Filters are applied automatically.",
                    parameters=CatalogSearchArgs,
                    handler=lookup,
                )
            ],
            flow_name=self.name,
        )
        trace.llm_calls.append({
            "prompt_chars": len(request.prompt),
            "candidates": len(candidates),
            "tools": ["search_legal_catalog"],
        })

        raw = await self.completion.complete(request)
        try:
            ranking = RankedDocIds.model_validate_json(strip_code_fences(raw))
        except ValidationError as e:
            raise GenerationError(self.name, f"LLM ranking does not match RankedDocIds: {e}") from e

        ordered: list[SearchResult] = []
        seen: set[str] = set()
        for docid in ranking.docids:
            if docid in pool and docid not in seen:
                ordered.append(pool[docid])
                seen.add(docid)
        ordered.extend(c for c in candidates if c.docid not in seen)
        return ordered


class GeneratedSearchFlow(BaseFlow[LegalSearchInput, SearchResults]):
    """Search whose results are free-generated by the model."""

    input_model = LegalSearchInput
    output_model = SearchResults
    temperature = 0.1

    @property
    def name(self) -> str:
        return "legal_search"

    def _get_system_prompt(self) -> str:
        return (
            "You are an expert legal researcher acting as a proxy for the Indian Kanoon "
            "search engine."
        )

    def render_prompt(self, data: LegalSearchInput) -> str:
        return f"""Generate a list of relevant Indian legal documents based on the user's query and filters. Return up-to-date, relevant documents that look like they came from Indian Kanoon. Provide between 3 and 5 results in 'results'.

Query: {data.query}
Filters: {_filters_json(data)}"""

    def finalize(self, output: SearchResults, data: LegalSearchInput, trace: FlowTrace) -> SearchResults:
        if len(output.results) <= self.config.search_limit:
            return output
        return SearchResults(results=output.results[: self.config.search_limit])


SEARCH_STRATEGIES: dict[str, type[BaseFlow]] = {
    "catalog": CatalogSearchFlow,
    "generated": GeneratedSearchFlow,
}


def create_search_flow(
    completion: CompletionService,
    config: Optional[FlowConfig] = None,
    catalog_factory: Callable[..., CatalogToolClient] = CatalogToolClient,
) -> BaseFlow[LegalSearchInput, SearchResults]:
    """Build the search flow for the configured strategy."""
    config = config or FlowConfig.from_env()
    strategy = SEARCH_STRATEGIES.get(config.search_strategy)
    if strategy is None:
        raise ValueError(
            f"Unknown search strategy '{config.search_strategy}'. "
            f"Expected one of: {sorted(SEARCH_STRATEGIES)}"
        )
    if strategy is CatalogSearchFlow:
        return CatalogSearchFlow(completion, config, catalog_factory)
    return strategy(completion, config)
