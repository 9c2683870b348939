"""
Pydantic Models for User Accounts and Sessions
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AuthErrorCode(str, Enum):
    """Categorized identity failures surfaced to the user."""

    EMAIL_ALREADY_IN_USE = "email-already-in-use"
    INVALID_CREDENTIAL = "invalid-credential"
    USER_NOT_FOUND = "user-not-found"
    REQUIRES_RECENT_LOGIN = "requires-recent-login"
    EMAIL_NOT_VERIFIED = "email-not-verified"
    WEAK_PASSWORD = "weak-password"
    INVALID_TOKEN = "invalid-token"
    INVALID_ACTION_CODE = "invalid-action-code"


class UserAccount(BaseModel):
    """A registered user as seen by the rest of the application."""

    uid: str
    email: str
    display_name: Optional[str] = None
    email_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuthSession(BaseModel):
    """Result of a successful sign-in."""

    id_token: str = Field(description="Bearer token for authenticated requests.")
    uid: str
    email_verified: bool
    auth_time: datetime = Field(description="When the user last entered credentials.")
