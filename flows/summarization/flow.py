"""
NyayaGPT Document Summarization Flow

Summarizes a legal document in 3-4 paragraphs from its title, snippet and
URL. The model is asked to write as if it had read the document; nothing is
fetched from the URL.
"""

from __future__ import annotations

from flows.base import BaseFlow
from shared.models import DocumentSummaryInput, DocumentSummaryOutput


class DocumentSummaryFlow(BaseFlow[DocumentSummaryInput, DocumentSummaryOutput]):
    """Document summarization flow."""

    input_model = DocumentSummaryInput
    output_model = DocumentSummaryOutput

    @property
    def name(self) -> str:
        return "document_summary"

    def _get_system_prompt(self) -> str:
        return "You are an expert legal analyst."

    def render_prompt(self, data: DocumentSummaryInput) -> str:
        return f"""Based on the title and snippet of the following legal document, generate a concise summary of the key points. Pretend you have read the full document at the provided URL.

Title: {data.title}
Snippet: {data.snippet}
URL: {data.url}

Generate a summary that is about 3-4 paragraphs long."""
