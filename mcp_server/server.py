"""
NyayaGPT Legal Catalog MCP Server

This is the Model Context Protocol server that exposes the fixed legal
catalog used by the Search and Research flows. It provides 3 tools:

TOOLS:
  1. search_legal_catalog - Substring and statute-tag search over the catalog
  2. get_catalog_document - Fetch one catalog record by docid
  3. resolve_case_citation - Map a reporter citation to its known case

The catalog is a small in-memory table of Indian statutes and landmark
judgments. Flows call the ``*_impl`` functions directly through
``CatalogToolClient``; the ``@mcp.tool()`` wrappers serve the same
functions over MCP.

Usage:
    # Run as MCP server
    python -m mcp_server.server

    # Or import for testing
    from mcp_server.server import search_legal_catalog_impl
"""

import logging
import re
from typing import Any, Dict, List, Optional, Union

from fastmcp import FastMCP

from shared.models.filters import FilterSet

# Configure logging
logger = logging.getLogger(__name__)

# Create FastMCP server
mcp = FastMCP(
    name="nyayagpt",
    instructions="NyayaGPT Legal Catalog Server - Indian statutes and landmark judgments",
)

DEFAULT_LIMIT = 5


# =============================================================================
# Catalog data
# =============================================================================

LEGAL_CATALOG: List[Dict[str, Any]] = [
    {
        "docid": "ipc-302",
        "title": "Indian Penal Code (IPC), 1860 - Section 302",
        "snippet": "Punishment for murder. Whoever commits murder shall be punished with death, "
                   "or imprisonment for life, and shall also be liable to fine.",
        "url": "https://indiankanoon.org/doc/1560742/",
        "tags": ["ipc"],
    },
    {
        "docid": "ipc-304b",
        "title": "Indian Penal Code (IPC), 1860 - Section 304B",
        "snippet": "Dowry death. Where the death of a woman is caused by burns or bodily injury within "
                   "seven years of her marriage and she was subjected to cruelty for dowry.",
        "url": "https://indiankanoon.org/doc/653797/",
        "tags": ["ipc"],
    },
    {
        "docid": "ipc-376",
        "title": "Indian Penal Code (IPC), 1860 - Section 376",
        "snippet": "Punishment for rape. Rigorous imprisonment of not less than ten years, which may "
                   "extend to imprisonment for life, and fine.",
        "url": "https://indiankanoon.org/doc/1279834/",
        "tags": ["ipc"],
    },
    {
        "docid": "ipc-420",
        "title": "Indian Penal Code (IPC), 1860 - Section 420",
        "snippet": "Cheating and dishonestly inducing delivery of property. Imprisonment which may "
                   "extend to seven years, and fine.",
        "url": "https://indiankanoon.org/doc/1436241/",
        "tags": ["ipc"],
    },
    {
        "docid": "ipc-498a",
        "title": "Indian Penal Code (IPC), 1860 - Section 498A",
        "snippet": "Husband or relative of husband of a woman subjecting her to cruelty. "
                   "Imprisonment which may extend to three years and fine.",
        "url": "https://indiankanoon.org/doc/538436/",
        "tags": ["ipc"],
    },
    {
        "docid": "ipc-34",
        "title": "Indian Penal Code (IPC), 1860 - Section 34",
        "snippet": "Acts done by several persons in furtherance of common intention. Each person is "
                   "liable for the act in the same manner as if it were done by him alone.",
        "url": "https://indiankanoon.org/doc/37788/",
        "tags": ["ipc"],
    },
    {
        "docid": "crpc-438",
        "title": "Code of Criminal Procedure (CrPC), 1973 - Section 438",
        "snippet": "Direction for grant of bail to person apprehending arrest (anticipatory bail) "
                   "for a non-bailable offence.",
        "url": "https://indiankanoon.org/doc/1783708/",
        "tags": ["crpc"],
    },
    {
        "docid": "crpc-482",
        "title": "Code of Criminal Procedure (CrPC), 1973 - Section 482",
        "snippet": "Saving of inherent powers of High Court to prevent abuse of the process of any "
                   "court or otherwise to secure the ends of justice, including quashing of FIRs.",
        "url": "https://indiankanoon.org/doc/1679850/",
        "tags": ["crpc"],
    },
    {
        "docid": "crpc-125",
        "title": "Code of Criminal Procedure (CrPC), 1973 - Section 125",
        "snippet": "Order for maintenance of wives, children and parents who are unable to maintain "
                   "themselves.",
        "url": "https://indiankanoon.org/doc/1056396/",
        "tags": ["crpc"],
    },
    {
        "docid": "cpc-o39",
        "title": "Code of Civil Procedure (CPC), 1908 - Order XXXIX Rules 1 and 2",
        "snippet": "Temporary injunctions and interlocutory orders where property in dispute is in "
                   "danger of being wasted, damaged or alienated.",
        "url": "https://indiankanoon.org/doc/1836682/",
        "tags": ["cpc"],
    },
    {
        "docid": "cpc-9",
        "title": "Code of Civil Procedure (CPC), 1908 - Section 9",
        "snippet": "Courts to try all civil suits unless barred. Civil courts have jurisdiction over "
                   "all suits of a civil nature except those expressly or impliedly barred.",
        "url": "https://indiankanoon.org/doc/1169391/",
        "tags": ["cpc"],
    },
    {
        "docid": "ica-73",
        "title": "Indian Contract Act, 1872 - Section 73",
        "snippet": "Compensation for loss or damage caused by breach of contract, for loss which "
                   "naturally arose in the usual course of things.",
        "url": "https://indiankanoon.org/doc/1760763/",
        "tags": ["contract-act"],
    },
    {
        "docid": "ica-10",
        "title": "Indian Contract Act, 1872 - Section 10",
        "snippet": "What agreements are contracts. Agreements made by free consent of parties "
                   "competent to contract, for a lawful consideration and with a lawful object.",
        "url": "https://indiankanoon.org/doc/171398/",
        "tags": ["contract-act"],
    },
    {
        "docid": "ica-27",
        "title": "Indian Contract Act, 1872 - Section 27",
        "snippet": "Agreement in restraint of trade void. Non-compete covenants operating after the "
                   "termination of employment are void except as provided.",
        "url": "https://indiankanoon.org/doc/1965344/",
        "tags": ["contract-act"],
    },
    {
        "docid": "const-art-21",
        "title": "Constitution of India - Article 21",
        "snippet": "Protection of life and personal liberty. No person shall be deprived of his life "
                   "or personal liberty except according to procedure established by law.",
        "url": "https://indiankanoon.org/doc/1199182/",
        "tags": ["const"],
    },
    {
        "docid": "const-art-14",
        "title": "Constitution of India - Article 14",
        "snippet": "Equality before law. The State shall not deny to any person equality before the "
                   "law or the equal protection of the laws.",
        "url": "https://indiankanoon.org/doc/367586/",
        "tags": ["const"],
    },
    {
        "docid": "case-kesavananda",
        "title": "Kesavananda Bharati v. State of Kerala",
        "snippet": "(1973) 4 SCC 225. Thirteen-judge bench held that Parliament may amend the "
                   "Constitution but cannot alter its basic structure.",
        "url": "https://indiankanoon.org/doc/257876/",
        "tags": ["const"],
    },
    {
        "docid": "case-maneka-gandhi",
        "title": "Maneka Gandhi v. Union of India",
        "snippet": "AIR 1978 SC 597. Procedure depriving personal liberty under Article 21 must be "
                   "just, fair and reasonable; Articles 14, 19 and 21 are interlinked.",
        "url": "https://indiankanoon.org/doc/1766147/",
        "tags": ["const"],
    },
    {
        "docid": "case-puttaswamy",
        "title": "Justice K.S. Puttaswamy (Retd.) v. Union of India",
        "snippet": "(2017) 10 SCC 1. Nine-judge bench recognised the right to privacy as a "
                   "fundamental right under Article 21.",
        "url": "https://indiankanoon.org/doc/91938676/",
        "tags": ["const"],
    },
    {
        "docid": "case-bachan-singh",
        "title": "Bachan Singh v. State of Punjab",
        "snippet": "(1980) 2 SCC 684. Upheld the death penalty for murder under Section 302 IPC, "
                   "to be imposed only in the rarest of rare cases.",
        "url": "https://indiankanoon.org/doc/307021/",
        "tags": ["ipc", "const"],
    },
    {
        "docid": "case-arnesh-kumar",
        "title": "Arnesh Kumar v. State of Bihar",
        "snippet": "(2014) 8 SCC 273. Guidelines against automatic arrest in offences punishable "
                   "with imprisonment up to seven years, including Section 498A IPC.",
        "url": "https://indiankanoon.org/doc/2982624/",
        "tags": ["ipc", "crpc"],
    },
    {
        "docid": "case-shah-bano",
        "title": "Mohd. Ahmed Khan v. Shah Bano Begum",
        "snippet": "AIR 1985 SC 945. A divorced Muslim woman is entitled to maintenance under "
                   "Section 125 CrPC beyond the iddat period.",
        "url": "https://indiankanoon.org/doc/823221/",
        "tags": ["crpc"],
    },
]

# Reporter citation -> catalog docid. Matched on word boundaries after normalization.
KNOWN_CITATIONS: Dict[str, str] = {
    "4 SCC 225": "case-kesavananda",
    "AIR 1978 SC 597": "case-maneka-gandhi",
    "10 SCC 1": "case-puttaswamy",
    "2 SCC 684": "case-bachan-singh",
    "8 SCC 273": "case-arnesh-kumar",
    "AIR 1985 SC 945": "case-shah-bano",
}

_CATALOG_INDEX: Dict[str, Dict[str, Any]] = {rec["docid"]: rec for rec in LEGAL_CATALOG}


def _normalize(text: str) -> str:
    """Uppercase, drop brackets and punctuation, collapse whitespace."""
    text = re.sub(r"[()\[\].,]", " ", text.upper())
    return re.sub(r"\s+", " ", text).strip()


def _query_terms(query: str) -> List[str]:
    return [t for t in re.split(r"[^\w-]+", query.lower()) if t]


def _matches_query(record: Dict[str, Any], query: str) -> bool:
    """Literal substring match: the whole query, or every query term, must occur."""
    haystack = " ".join(
        [record["title"], record["snippet"], " ".join(record["tags"])]
    ).lower()
    needle = query.lower().strip()
    if needle and needle in haystack:
        return True
    terms = _query_terms(needle)
    if not terms:
        return False
    return all(term in haystack for term in terms)


# =============================================================================
# Tool 1: search_legal_catalog
# =============================================================================

def search_legal_catalog_impl(
    query: str,
    filters: Optional[Union[FilterSet, Dict[str, Any]]] = None,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """
    Search the legal catalog by substring and statute tag.

    A record is returned when it matches the query text and carries at least
    one active statute flag. When no flag is active, no tag-based exclusion
    is applied.

    Args:
        query: Search query string
        filters: FilterSet or its dict form, e.g. {"ipc": True, "contract-act": True}
        limit: Maximum number of results (default 5)

    Returns:
        Dictionary with:
            - results: list of {docid, title, snippet, url, tags}
            - total_matches: int (before the limit is applied)
            - query: str (echoed back)
    """
    filter_set = filters if isinstance(filters, FilterSet) else FilterSet.model_validate(filters or {})

    matches = [
        dict(record, tags=list(record["tags"]))
        for record in LEGAL_CATALOG
        if filter_set.matches(record["tags"]) and _matches_query(record, query)
    ]

    logger.debug(
        f"Catalog search '{query}' (filters={sorted(filter_set.active())}): "
        f"{len(matches)} matches"
    )

    return {
        "results": matches[: max(limit, 0)],
        "total_matches": len(matches),
        "query": query,
    }


# MCP Tool wrapper for search_legal_catalog
@mcp.tool()
def search_legal_catalog(
    query: str,
    filters: Optional[Dict[str, bool]] = None,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """Search Indian statutes and landmark judgments by text and statute tag."""
    return search_legal_catalog_impl(query, filters, limit)


# =============================================================================
# Tool 2: get_catalog_document
# =============================================================================

def get_catalog_document_impl(docid: str) -> Optional[Dict[str, Any]]:
    """
    Fetch a single catalog record.

    Returns:
        The record dict, or None if the docid is unknown.
    """
    record = _CATALOG_INDEX.get(docid)
    if record is None:
        return None
    return dict(record, tags=list(record["tags"]))


@mcp.tool()
def get_catalog_document(docid: str) -> Optional[Dict[str, Any]]:
    """Fetch a catalog record by its docid."""
    return get_catalog_document_impl(docid)


# =============================================================================
# Tool 3: resolve_case_citation
# =============================================================================

def resolve_case_citation_impl(query: str) -> Optional[Dict[str, Any]]:
    """
    Resolve a reporter citation contained in the query to its known case.

    Examples:
        "4 SCC 225" -> Kesavananda Bharati v. State of Kerala
        "AIR 1985 SC 945" -> Mohd. Ahmed Khan v. Shah Bano Begum

    Returns:
        The catalog record plus the matched ``citation``, or None when the
        query contains no known citation.
    """
    normalized = _normalize(query)
    for citation, docid in KNOWN_CITATIONS.items():
        if re.search(rf"(?<![\w]){re.escape(citation)}(?![\w])", normalized):
            record = get_catalog_document_impl(docid)
            if record is not None:
                record["citation"] = citation
                return record
    return None


@mcp.tool()
def resolve_case_citation(query: str) -> Optional[Dict[str, Any]]:
    """Map a case citation such as '4 SCC 225' to the case it reports."""
    return resolve_case_citation_impl(query)


# =============================================================================
# Main entry point
# =============================================================================

def main():
    """Run the MCP server over stdio."""
    mcp.run()


if __name__ == "__main__":
    main()
