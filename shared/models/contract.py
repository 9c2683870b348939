"""
Pydantic Models for Contract Review

The contract review flow accepts pasted contract text, an uploaded contract
document (as a data URI), or both. It returns a key clause summary and a
separate risk and revision report.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .media import validate_data_uri

MIN_CONTRACT_LENGTH = 100


class ContractReviewInput(BaseModel):
    """Input to the Contract Review flow."""

    contract_text: Optional[str] = Field(
        default=None,
        description="The legal contract to analyze as raw text.",
    )
    contract_data_uri: Optional[str] = Field(
        default=None,
        validate_default=True,
        description=(
            "The contract document as a data URI. "
            "Expected format: 'data:<mimetype>;base64,<encoded_data>'."
        ),
    )
    contract_filename: Optional[str] = Field(
        default=None,
        description="Original filename of the uploaded contract, if any.",
    )

    @field_validator("contract_text")
    @classmethod
    def check_contract_text(cls, v: Optional[str]) -> Optional[str]:
        """Blank text counts as absent; supplied text must be long enough to analyze."""
        if v is None or not v.strip():
            return None
        if len(v.strip()) < MIN_CONTRACT_LENGTH:
            raise ValueError(
                f"Contract text must be at least {MIN_CONTRACT_LENGTH} characters."
            )
        return v

    @field_validator("contract_data_uri")
    @classmethod
    def check_contract_source(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        v = validate_data_uri(v)
        # contract_text is missing from info.data when it already failed validation
        if v is None and "contract_text" in info.data and info.data["contract_text"] is None:
            raise ValueError("Provide either contract text or a contract document.")
        return v


class ContractReviewOutput(BaseModel):
    """Output of the Contract Review flow."""

    summary: str = Field(
        min_length=1,
        description="A summary of the key clauses in the contract.",
    )
    risk_report: str = Field(
        min_length=1,
        description=(
            "A report identifying potential risks and missing clauses, "
            "with suggested revisions."
        ),
    )
