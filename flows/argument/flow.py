"""
NyayaGPT Argument Drafting Flow

Generates a structured legal argument for a described situation, citing
relevant Indian legal authorities. An optional document supplies primary
context.
"""

from __future__ import annotations

from flows.base import BaseFlow, document_attachments, render_document_section
from shared.models import LegalArgumentInput, LegalArgumentOutput
from shared.models.media import MediaAttachment


class LegalArgumentFlow(BaseFlow[LegalArgumentInput, LegalArgumentOutput]):
    """Argument Drafting flow."""

    input_model = LegalArgumentInput
    output_model = LegalArgumentOutput

    @property
    def name(self) -> str:
        return "legal_argument"

    def _get_system_prompt(self) -> str:
        return """You are an AI legal assistant specializing in Indian law.

Generate structured legal arguments: issues, applicable law, analysis and
conclusion. Cite relevant Indian legal authorities such as the Constitution
of India, IPC, CrPC, CPC, Evidence Act, Contract Act, Companies Act, SEBI
regulations, RBI circulars, and Supreme Court/High Court judgments.

Return the complete argument as a single string in 'argument'."""

    def render_prompt(self, data: LegalArgumentInput) -> str:
        prompt = (
            "Generate a structured legal argument based on the following prompt, "
            "citing relevant Indian legal authorities.\n"
        )

        document = render_document_section(
            "Document Context", data.context_data_uri, data.context_filename
        )
        if document:
            prompt += (
                "\nUse the content from the provided document as primary context.\n\n"
                f"{document}"
            )

        if data.prompt:
            prompt += f"\nPrompt: {data.prompt}\n"

        return prompt

    def get_media(self, data: LegalArgumentInput) -> list[MediaAttachment]:
        return document_attachments(data.context_data_uri, data.context_filename)
