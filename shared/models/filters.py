"""
Pydantic Models for Search Filters

A FilterSet narrows research and search queries by Indian statute category.
Every flag is optional and unset by default; a FilterSet with no true flag
places no restriction on the results.

STATUTE TAGS:

  - ipc: Indian Penal Code, 1860
  - crpc: Code of Criminal Procedure, 1973
  - cpc: Code of Civil Procedure, 1908
  - contract-act: Indian Contract Act, 1872
  - const: Constitution of India
"""

from __future__ import annotations

from typing import Optional, Set

from pydantic import BaseModel, ConfigDict, Field


# Tag names as they appear on catalog records and in serialized filters
STATUTE_TAGS: dict[str, str] = {
    "ipc": "Indian Penal Code, 1860",
    "crpc": "Code of Criminal Procedure, 1973",
    "cpc": "Code of Civil Procedure, 1908",
    "contract-act": "Indian Contract Act, 1872",
    "const": "Constitution of India",
}


class FilterSet(BaseModel):
    """Boolean statute flags for narrowing a search."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    ipc: Optional[bool] = Field(default=None, description="Restrict to the Indian Penal Code.")
    crpc: Optional[bool] = Field(default=None, description="Restrict to the Code of Criminal Procedure.")
    cpc: Optional[bool] = Field(default=None, description="Restrict to the Code of Civil Procedure.")
    contract_act: Optional[bool] = Field(
        default=None,
        alias="contract-act",
        description="Restrict to the Indian Contract Act.",
    )
    const: Optional[bool] = Field(default=None, description="Restrict to the Constitution of India.")

    def active(self) -> Set[str]:
        """Return the tag names whose flag is set to true."""
        flags = self.model_dump(by_alias=True)
        return {tag for tag, value in flags.items() if value}

    def is_empty(self) -> bool:
        """True when no flag restricts the search."""
        return not self.active()

    def matches(self, tags: Set[str] | list[str]) -> bool:
        """Check a record's tags against the active flags."""
        active = self.active()
        if not active:
            return True
        return bool(active.intersection(tags))

    def describe(self) -> str:
        """Human-readable list of active statutes, used in prompts."""
        active = self.active()
        if not active:
            return "None (all statutes)"
        return ", ".join(STATUTE_TAGS[tag] for tag in sorted(active))
