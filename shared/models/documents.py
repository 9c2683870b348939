"""
Pydantic Models for Documents

Covers the two flows that work on a single legal document found by search
(summarization and conversational Q&A) and the UploadedDocument record kept
in the document store for each user upload.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, HttpUrl


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("Value must not be blank.")
    return v


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class DocumentSummaryInput(BaseModel):
    """Input to the Document Summarization flow."""

    title: NonBlankStr = Field(min_length=1, description="The title of the legal document.")
    snippet: NonBlankStr = Field(min_length=1, description="A snippet from the legal document.")
    url: HttpUrl = Field(description="The URL of the full legal document.")


class DocumentSummaryOutput(BaseModel):
    """Output of the Document Summarization flow."""

    summary: str = Field(min_length=1, description="A detailed summary of the legal document.")


class DocumentChatInput(BaseModel):
    """Input to the Conversational Q&A flow."""

    title: NonBlankStr = Field(min_length=1, description="The title of the legal document.")
    summary: NonBlankStr = Field(min_length=1, description="The summary of the legal document.")
    question: NonBlankStr = Field(min_length=1, description="The user's question about the document.")


class DocumentChatOutput(BaseModel):
    """Output of the Conversational Q&A flow."""

    answer: str = Field(min_length=1, description="The answer to the question.")


class UploadedDocument(BaseModel):
    """
    A user-owned document kept in the document store.

    The binary content lives in the blob store at ``storage_path``; this
    record only carries metadata and the download reference.
    """

    id: str = Field(description="Document identifier within the user's collection.")
    user_id: str = Field(description="Owner of the document.")
    filename: str
    content_type: str = Field(default="application/octet-stream")
    file_size: int = Field(ge=0, description="Size in bytes.")
    storage_path: str = Field(description="Blob store path of the content.")
    download_url: str = Field(description="Retrievable download reference.")
    upload_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
