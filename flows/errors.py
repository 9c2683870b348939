"""
Flow error types.

Every flow invocation either returns a shape-valid output or raises exactly
one of these:

  - FlowInputError: the input failed validation; no external call was made
  - GenerationError: the completion service failed or returned output that
    does not satisfy the flow's output shape
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError


class FlowError(Exception):
    """Base class for flow failures."""

    def __init__(self, flow: str, message: str):
        super().__init__(f"[{flow}] {message}")
        self.flow = flow
        self.message = message


class FlowInputError(FlowError):
    """Input validation failed before any completion call."""

    def __init__(self, flow: str, message: str, fields: Optional[dict[str, str]] = None):
        super().__init__(flow, message)
        self.fields = fields or {}

    @classmethod
    def from_validation_error(cls, flow: str, error: ValidationError) -> FlowInputError:
        """Build from a pydantic ValidationError, keyed by dotted field path."""
        fields: dict[str, str] = {}
        for item in error.errors():
            path = ".".join(str(part) for part in item["loc"]) or "__root__"
            # pydantic prefixes custom ValueError messages with "Value error, "
            fields.setdefault(path, item["msg"].removeprefix("Value error, "))
        names = ", ".join(fields)
        return cls(flow, f"Invalid input for {names}", fields)


class GenerationError(FlowError):
    """The completion service failed or its response did not fit the output shape."""
