"""
Pydantic Models for Legal Research & Analysis

A research query is either a natural-language question or a case citation
(e.g. '4 SCC 225', 'AIR 1985 SC 945'). The flow resolves the single most
relevant document, summarizes it, and answers the question.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, HttpUrl, field_validator

from .filters import FilterSet


class LegalResearchInput(BaseModel):
    """Input to the Research & Analysis flow."""

    query: str = Field(
        min_length=1,
        description=(
            "The user's natural language search query, which may be a question "
            "or a specific case number."
        ),
    )
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


class LegalResearchOutput(BaseModel):
    """Output of the Research & Analysis flow."""

    title: str = Field(
        min_length=1,
        description="The title of the most relevant legal document or case found.",
    )
    summary: str = Field(
        min_length=1,
        description="A detailed summary of the legal document.",
    )
    answer: str = Field(
        min_length=1,
        description="The specific answer to the user's question based on the document.",
    )
    url: HttpUrl = Field(description="The URL to the full document.")
