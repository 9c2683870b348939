"""
NyayaGPT Prompt Flows

One flow per legal-assistant operation:

  1. ContractReviewFlow - Clause summary and risk & revision report
  2. LegalArgumentFlow - Drafted argument citing Indian authorities
  3. LegalResearchFlow - One resolved document, summary and answer
  4. CatalogSearchFlow / GeneratedSearchFlow - Ordered search results
  5. DocumentSummaryFlow - 3-4 paragraph document summary
  6. DocumentChatFlow - Conversational answer about a document

The FlowRegistry builds all of them against one ServiceContainer:

Usage:
    from flows import FlowRegistry
    from services import ServiceContainer

    registry = FlowRegistry(ServiceContainer.from_env())
    run = await registry.invoke("document_summary", {
        "title": "X", "snippet": "Y", "url": "https://example.com/x",
    })
    print(run.output.summary)
"""

from .base import (
    BaseFlow,
    CatalogToolClient,
    FlowConfig,
    FlowRun,
    FlowTrace,
)
from .completion import (
    CompletionConfig,
    CompletionRequest,
    CompletionService,
    OpenAICompletionService,
    Tool,
)
from .errors import FlowError, FlowInputError, GenerationError
from .contract_review import ContractReviewFlow
from .argument import LegalArgumentFlow
from .research import LegalResearchFlow
from .search import CatalogSearchFlow, GeneratedSearchFlow, create_search_flow
from .summarization import DocumentSummaryFlow
from .chat import DocumentChatFlow
from .registry import FlowRegistry

__all__ = [
    # Base
    "BaseFlow",
    "CatalogToolClient",
    "FlowConfig",
    "FlowRun",
    "FlowTrace",
    # Completion
    "CompletionConfig",
    "CompletionRequest",
    "CompletionService",
    "OpenAICompletionService",
    "Tool",
    # Errors
    "FlowError",
    "FlowInputError",
    "GenerationError",
    # Flows
    "ContractReviewFlow",
    "LegalArgumentFlow",
    "LegalResearchFlow",
    "CatalogSearchFlow",
    "GeneratedSearchFlow",
    "create_search_flow",
    "DocumentSummaryFlow",
    "DocumentChatFlow",
    # Registry
    "FlowRegistry",
]
