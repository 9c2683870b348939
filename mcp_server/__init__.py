"""
NyayaGPT MCP Server

This package provides the Model Context Protocol server for the fixed legal
catalog of Indian statutes and landmark judgments.

The MCP server provides 3 tools:
  1. search_legal_catalog - Substring and statute-tag search
  2. get_catalog_document - Fetch one record by docid
  3. resolve_case_citation - Map a reporter citation to its case

Usage:
    # Run as MCP server
    python -m mcp_server.server

    # Or import for programmatic use
    from mcp_server import search_legal_catalog_impl
"""

from .server import (
    KNOWN_CITATIONS,
    LEGAL_CATALOG,
    get_catalog_document,
    get_catalog_document_impl,
    mcp,
    resolve_case_citation,
    resolve_case_citation_impl,
    search_legal_catalog,
    search_legal_catalog_impl,
)

__all__ = [
    "mcp",
    "LEGAL_CATALOG",
    "KNOWN_CITATIONS",
    "search_legal_catalog",
    "search_legal_catalog_impl",
    "get_catalog_document",
    "get_catalog_document_impl",
    "resolve_case_citation",
    "resolve_case_citation_impl",
]
