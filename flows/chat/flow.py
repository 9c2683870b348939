"""
NyayaGPT Document Chat Flow

Answers a question about a document given its title and summary. Questions
unrelated to the document (greetings, general questions) are answered
conversationally.
"""

from __future__ import annotations

from flows.base import BaseFlow
from shared.models import DocumentChatInput, DocumentChatOutput


class DocumentChatFlow(BaseFlow[DocumentChatInput, DocumentChatOutput]):
    input_model = DocumentChatInput
    output_model = DocumentChatOutput

    @property
    def name(self) -> str:
        return "document_chat"

    def _get_system_prompt(self) -> str:
        return (
            "You are a helpful and friendly legal assistant. You are chatting with "
            "a user about a specific legal document."
        )

    def render_prompt(self, data: DocumentChatInput) -> str:
        return f"""First, use the provided title and summary to answer their question about the document.

If the user's question is not about the document (e.g., a greeting like "hi" or a general question), then answer it as a general conversational AI.

If a document-related question cannot be answered from the provided context, say that the information is not in the document, but try to provide a helpful, general response if possible.

Document Title: {data.title}
Document Summary: {data.summary}

User's Question: {data.question}

Put your reply in 'answer'."""
