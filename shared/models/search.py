"""
Pydantic Models for Legal Search

Search returns an ordered list of SearchResult records. Results are not
deduplicated or scored; order is whatever the search strategy produced.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, HttpUrl, field_validator

from .filters import FilterSet


class LegalSearchInput(BaseModel):
    """Input to the Search flow."""

    query: str = Field(min_length=1, description="The user's natural language search query.")
    filters: FilterSet = Field(
        default_factory=FilterSet,
        description="Filters to apply to the search.",
    )

    @field_validator("query")
    @classmethod
    def check_query(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please enter a query to start the search.")
        return v.strip()


class SearchResult(BaseModel):
    """A single legal document returned by a search."""

    docid: str = Field(min_length=1, description="A unique identifier for the document.")
    title: str = Field(min_length=1, description="The title of the legal document or case.")
    snippet: str = Field(description="A brief summary or relevant snippet from the document.")
    url: HttpUrl = Field(description="The URL to the full document.")
    tags: List[str] = Field(
        default_factory=list,
        description="Statute tags of the document (ipc, crpc, cpc, contract-act, const).",
    )


class SearchResults(BaseModel):
    """Output of the Search flow."""

    results: List[SearchResult] = Field(
        default_factory=list,
        description="Relevant documents, most relevant first.",
    )


class RankedDocIds(BaseModel):
    """Ordering returned by the completion service when re-ranking catalog hits."""

    docids: List[str] = Field(
        default_factory=list,
        description="Document identifiers ordered from most to least relevant.",
    )
