"""
NyayaGPT Shared Pydantic Models

This package contains the request/response models used by the flows and the
API. Models are organized by purpose:

  - filters.py: statute FilterSet for research and search
  - media.py: data URI helpers for uploaded documents
  - contract.py: Contract Review input/output
  - argument.py: Argument Drafting input/output
  - research.py: Research & Analysis input/output
  - search.py: Search input, SearchResult, SearchResults
  - documents.py: Summarization, Q&A, UploadedDocument
  - identity.py: user accounts, sessions, auth error codes

Usage:
    from shared.models import (
        ContractReviewInput, ContractReviewOutput,
        FilterSet,
        LegalSearchInput, SearchResults,
    )
"""

# Filters and media
from .filters import STATUTE_TAGS, FilterSet
from .media import MediaAttachment, parse_data_uri, to_data_uri

# Flow inputs and outputs
from .contract import ContractReviewInput, ContractReviewOutput
from .argument import LegalArgumentInput, LegalArgumentOutput
from .research import LegalResearchInput, LegalResearchOutput
from .search import LegalSearchInput, RankedDocIds, SearchResult, SearchResults
from .documents import (
    DocumentChatInput,
    DocumentChatOutput,
    DocumentSummaryInput,
    DocumentSummaryOutput,
    UploadedDocument,
)

# Accounts
from .identity import AuthErrorCode, AuthSession, UserAccount

__all__ = [
    # Filters and media
    "STATUTE_TAGS",
    "FilterSet",
    "MediaAttachment",
    "parse_data_uri",
    "to_data_uri",
    # Contract review
    "ContractReviewInput",
    "ContractReviewOutput",
    # Argument drafting
    "LegalArgumentInput",
    "LegalArgumentOutput",
    # Research
    "LegalResearchInput",
    "LegalResearchOutput",
    # Search
    "LegalSearchInput",
    "RankedDocIds",
    "SearchResult",
    "SearchResults",
    # Documents
    "DocumentChatInput",
    "DocumentChatOutput",
    "DocumentSummaryInput",
    "DocumentSummaryOutput",
    "UploadedDocument",
    # Accounts
    "AuthErrorCode",
    "AuthSession",
    "UserAccount",
]
