"""
NyayaGPT Contract Review Flow

Summarizes the key clauses of a contract, identifies potential risks and
missing clauses, and produces a risk report with suggested revisions.

INPUT:
  - Pasted contract text, an uploaded contract document, or both
  - At least one source must be present (checked before any LLM call)

OUTPUT:
  - summary: key clause summary
  - risk_report: risks, missing clauses and suggested revisions
"""

from __future__ import annotations

from flows.base import BaseFlow, document_attachments, render_document_section
from shared.models import ContractReviewInput, ContractReviewOutput
from shared.models.media import MediaAttachment


class ContractReviewFlow(BaseFlow[ContractReviewInput, ContractReviewOutput]):
    """
    Contract Review flow.

    Renders the contract text and/or the attached contract document into a
    single analysis prompt.
    """

    input_model = ContractReviewInput
    output_model = ContractReviewOutput

    @property
    def name(self) -> str:
        return "contract_review"

    def _get_system_prompt(self) -> str:
        return """You are an expert legal analyst specializing in Indian contract law.

You analyze contracts for NyayaGPT users. For every contract you:
1. Summarize the key clauses (parties, term, payment, obligations, termination,
   liability, indemnity, confidentiality, dispute resolution, governing law).
2. Identify potential risks and missing clauses, with reference to the
   Indian Contract Act, 1872 and other applicable Indian law.
3. Suggest concrete revisions for each risk or gap.

Put the clause summary in 'summary' and the risks, missing clauses and
suggested revisions in 'risk_report'."""

    def render_prompt(self, data: ContractReviewInput) -> str:
        prompt = (
            "You will analyze the contract provided and summarize the key clauses, "
            "identify potential risks and missing clauses, and generate a risk report "
            "with suggested revisions.\n"
        )

        if data.contract_text:
            prompt += f"\nContract Text:\n{data.contract_text}\n"

        document = render_document_section(
            "Contract Document", data.contract_data_uri, data.contract_filename
        )
        if document:
            prompt += f"\n{document}"

        return prompt

    def get_media(self, data: ContractReviewInput) -> list[MediaAttachment]:
        return document_attachments(data.contract_data_uri, data.contract_filename)
