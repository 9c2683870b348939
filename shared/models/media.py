"""
Data URI helpers for uploaded documents.

Documents travel from the upload endpoints to the flows as data URIs of the
form ``data:<mimetype>;base64,<encoded_data>``. Text documents are inlined
into prompts; everything else is attached to the completion request.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?P<params>(?:;[\w.+-]+=[\w.+-]+)*);base64,(?P<data>.*)$",
    re.DOTALL,
)


@dataclass(frozen=True)
class MediaAttachment:
    """A decoded document ready to be sent alongside a prompt."""

    mime_type: str
    data: bytes
    filename: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.mime_type.startswith("text/")

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def as_text(self) -> str:
        return self.data.decode("utf-8", errors="replace")

    def to_data_uri(self) -> str:
        return to_data_uri(self.mime_type, self.data)


def parse_data_uri(uri: str, filename: Optional[str] = None) -> MediaAttachment:
    """
    Decode a base64 data URI.

    Raises:
        ValueError: if the URI is not ``data:<mimetype>;base64,<data>`` or the
            payload is not valid base64.
    """
    match = _DATA_URI_RE.match(uri.strip())
    if not match:
        raise ValueError(
            "Expected a data URI in the format 'data:<mimetype>;base64,<encoded_data>'"
        )
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Data URI payload is not valid base64: {e}") from e
    return MediaAttachment(
        mime_type=match.group("mime").lower(),
        data=data,
        filename=filename,
    )


def to_data_uri(content_type: Optional[str], data: bytes) -> str:
    """Encode raw bytes as a base64 data URI."""
    mime = (content_type or "").split(";")[0].strip().lower() or "application/octet-stream"
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def validate_data_uri(value: Optional[str]) -> Optional[str]:
    """Pydantic field validator helper: blank means absent, otherwise must parse."""
    if value is None or not value.strip():
        return None
    parse_data_uri(value)
    return value.strip()
