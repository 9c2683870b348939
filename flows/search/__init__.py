"""
NyayaGPT Search Flow

Catalog search (default) and model-generated search strategies.
"""

from .flow import (
    SEARCH_STRATEGIES,
    CatalogSearchArgs,
    CatalogSearchFlow,
    GeneratedSearchFlow,
    create_search_flow,
)

__all__ = [
    "SEARCH_STRATEGIES",
    "CatalogSearchArgs",
    "CatalogSearchFlow",
    "GeneratedSearchFlow",
    "create_search_flow",
]
