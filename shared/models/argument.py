"""
Pydantic Models for Legal Argument Drafting
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .media import validate_data_uri

MIN_PROMPT_LENGTH = 20


class LegalArgumentInput(BaseModel):
    """Input to the Argument Drafting flow."""

    prompt: Optional[str] = Field(
        default=None,
        description="A prompt describing the legal situation for which an argument is to be generated.",
    )
    context_data_uri: Optional[str] = Field(
        default=None,
        validate_default=True,
        description=(
            "A document, as a data URI, that provides context for the legal argument. "
            "Expected format: 'data:<mimetype>;base64,<encoded_data>'."
        ),
    )
    context_filename: Optional[str] = Field(
        default=None,
        description="Original filename of the context document, if any.",
    )

    @field_validator("prompt")
    @classmethod
    def check_prompt(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if len(v.strip()) < MIN_PROMPT_LENGTH:
            raise ValueError(f"Prompt must be at least {MIN_PROMPT_LENGTH} characters.")
        return v

    @field_validator("context_data_uri")
    @classmethod
    def check_argument_source(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        v = validate_data_uri(v)
        if v is None and "prompt" in info.data and info.data["prompt"] is None:
            raise ValueError("Provide either a prompt or a context document.")
        return v


class LegalArgumentOutput(BaseModel):
    """Output of the Argument Drafting flow."""

    argument: str = Field(
        min_length=1,
        description="A structured legal argument citing relevant Indian legal authorities.",
    )
