"""
Backend collaborator error types.

  - StorageError: the document store or blob store failed
  - DocumentNotFoundError: no document with that id in the user's collection
  - IdentityError: an account operation failed, categorized by AuthErrorCode
"""

from __future__ import annotations

from typing import Optional

from shared.models.identity import AuthErrorCode


class StorageError(Exception):
    """Document or blob storage failure."""


class DocumentNotFoundError(StorageError):
    def __init__(self, doc_id: str, message: Optional[str] = None):
        super().__init__(message or f"Document '{doc_id}' not found")
        self.doc_id = doc_id


class IdentityError(Exception):
    """Account operation failure with a user-presentable category."""

    MESSAGES = {
        AuthErrorCode.EMAIL_ALREADY_IN_USE: "This email address is already registered.",
        AuthErrorCode.INVALID_CREDENTIAL: "Invalid email or password.",
        AuthErrorCode.USER_NOT_FOUND: "No account exists for this user.",
        AuthErrorCode.REQUIRES_RECENT_LOGIN: "Please sign in again before performing this action.",
        AuthErrorCode.EMAIL_NOT_VERIFIED: "Please verify your email address before signing in.",
        AuthErrorCode.WEAK_PASSWORD: "Password must be at least 6 characters.",
        AuthErrorCode.INVALID_TOKEN: "Your session is invalid or has expired.",
        AuthErrorCode.INVALID_ACTION_CODE: "This link is invalid or has expired.",
    }

    def __init__(self, code: AuthErrorCode, message: Optional[str] = None):
        self.code = AuthErrorCode(code)
        self.message = message or self.MESSAGES[self.code]
        super().__init__(f"{self.code.value}: {self.message}")
