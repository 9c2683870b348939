"""
Identity Provider

Account lifecycle for NyayaGPT users: sign-up with email verification,
sign-in, password reset, profile updates and account deletion.

RULES:
  - Sign-in of an account whose email is not verified fails (email-not-verified)
  - Deleting an account requires a session whose sign-in happened within the
    last 5 minutes (requires-recent-login)
  - Changing the email clears its verification until the new address is confirmed
  - Passwords shorter than 6 characters are rejected (weak-password)

InMemoryIdentityProvider keeps accounts in a dict, hashes passwords with
passlib and issues session tokens as signed JWTs carrying ``auth_time``.
Verification and reset "emails" are returned as one-time action codes.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from services.errors import IdentityError
from shared.models.identity import AuthErrorCode, AuthSession, UserAccount

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RECENT_LOGIN_WINDOW = timedelta(minutes=5)
JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class IdentityProvider(ABC):
    """Hosted identity service interface."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> UserAccount:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        pass

    @abstractmethod
    async def send_email_verification(self, uid: str) -> str:
        """Send a verification message; returns the action code it carries."""
        pass

    @abstractmethod
    async def resend_email_verification(self, email: str, password: str) -> str:
        """Send a fresh verification message to an account identified by its credentials."""
        pass

    @abstractmethod
    async def confirm_email(self, code: str) -> UserAccount:
        pass

    @abstractmethod
    async def reload(self, uid: str) -> UserAccount:
        """Current account state, including email verification status."""
        pass

    @abstractmethod
    async def send_password_reset(self, email: str) -> str:
        pass

    @abstractmethod
    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        pass

    @abstractmethod
    async def update_profile(
        self,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> UserAccount:
        pass

    @abstractmethod
    async def delete_account(self, session: AuthSession) -> None:
        """Delete the session's account. The session must come from a recent sign-in."""
        pass

    @abstractmethod
    async def verify_token(self, id_token: str) -> AuthSession:
        """Decode a session token. Raises IdentityError(invalid-token)."""
        pass


async def wait_for_email_verification(
    provider: IdentityProvider,
    uid: str,
    interval: float = 3.0,
    timeout: Optional[float] = None,
) -> UserAccount:
    """
    Poll the provider until the account's email is verified.

    Raises:
        TimeoutError: not verified within timeout seconds
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout if timeout is not None else None
    while True:
        account = await provider.reload(uid)
        if account.email_verified:
            return account
        if deadline is not None and loop.time() + interval > deadline:
            raise TimeoutError(f"Email for user {uid} not verified within {timeout}s")
        await asyncio.sleep(interval)


@dataclass
class _AccountRecord:
    uid: str
    email: str
    password_hash: str
    display_name: Optional[str]
    email_verified: bool
    created_at: datetime
    last_sign_in: Optional[datetime] = None

    def to_account(self) -> UserAccount:
        return UserAccount(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            email_verified=self.email_verified,
            created_at=self.created_at,
        )


@dataclass
class _ActionCode:
    purpose: str  # "verify-email" | "reset-password"
    uid: str
    expires_at: datetime


class InMemoryIdentityProvider(IdentityProvider):
    """Identity provider holding accounts in memory."""

    def __init__(
        self,
        secret: str,
        token_ttl: timedelta = timedelta(hours=1),
        action_code_ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not secret:
            raise ValueError("A signing secret is required for session tokens")
        self._secret = secret
        self.token_ttl = token_ttl
        self.action_code_ttl = action_code_ttl
        self._clock = clock
        self._accounts: dict[str, _AccountRecord] = {}
        self._uids_by_email: dict[str, str] = {}
        self._codes: dict[str, _ActionCode] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Account lifecycle
    # -------------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> UserAccount:
        email = _normalize_email(email)
        _check_password(password)
        async with self._lock:
            if email in self._uids_by_email:
                raise IdentityError(AuthErrorCode.EMAIL_ALREADY_IN_USE)
            record = _AccountRecord(
                uid=uuid4().hex,
                email=email,
                password_hash=pwd_context.hash(password),
                display_name=display_name,
                email_verified=False,
                created_at=self._clock(),
            )
            self._accounts[record.uid] = record
            self._uids_by_email[email] = record.uid

        logger.info(f"Created account {record.uid}")
        return record.to_account()

    async def sign_in(self, email: str, password: str) -> AuthSession:
        async with self._lock:
            uid = self._uids_by_email.get(_normalize_email(email))
            record = self._accounts.get(uid) if uid else None
            if record is None or not pwd_context.verify(password, record.password_hash):
                logger.warning("Sign-in failed: invalid credential")
                raise IdentityError(AuthErrorCode.INVALID_CREDENTIAL)
            if not record.email_verified:
                raise IdentityError(AuthErrorCode.EMAIL_NOT_VERIFIED)
            record.last_sign_in = self._clock()

        return self._issue_session(record)

    async def reload(self, uid: str) -> UserAccount:
        return self._get(uid).to_account()

    async def update_profile(
        self,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> UserAccount:
        async with self._lock:
            record = self._get(uid)
            if display_name is not None:
                record.display_name = display_name
            if email is not None and _normalize_email(email) != record.email:
                new_email = _normalize_email(email)
                if new_email in self._uids_by_email:
                    raise IdentityError(AuthErrorCode.EMAIL_ALREADY_IN_USE)
                del self._uids_by_email[record.email]
                self._uids_by_email[new_email] = uid
                record.email = new_email
                record.email_verified = False
            return record.to_account()

    async def delete_account(self, session: AuthSession) -> None:
        uid = session.uid
        if self._clock() - session.auth_time > RECENT_LOGIN_WINDOW:
            raise IdentityError(AuthErrorCode.REQUIRES_RECENT_LOGIN)
        async with self._lock:
            record = self._get(uid)
            del self._accounts[uid]
            del self._uids_by_email[record.email]
            self._codes = {code: a for code, a in self._codes.items() if a.uid != uid}

        logger.info(f"Deleted account {uid}")

    # -------------------------------------------------------------------------
    # Action codes
    # -------------------------------------------------------------------------

    async def send_email_verification(self, uid: str) -> str:
        self._get(uid)
        code = self._new_code("verify-email", uid)
        logger.info(f"Sent email verification to user {uid}")
        return code

    async def resend_email_verification(self, email: str, password: str) -> str:
        uid = self._uids_by_email.get(_normalize_email(email))
        record = self._accounts.get(uid) if uid else None
        if record is None or not pwd_context.verify(password, record.password_hash):
            raise IdentityError(AuthErrorCode.INVALID_CREDENTIAL)
        return await self.send_email_verification(record.uid)

    async def confirm_email(self, code: str) -> UserAccount:
        async with self._lock:
            record = self._get(self._redeem(code, "verify-email"))
            record.email_verified = True
            return record.to_account()

    async def send_password_reset(self, email: str) -> str:
        uid = self._uids_by_email.get(_normalize_email(email))
        if uid is None:
            raise IdentityError(AuthErrorCode.USER_NOT_FOUND)
        code = self._new_code("reset-password", uid)
        logger.info(f"Sent password reset to user {uid}")
        return code

    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        _check_password(new_password)
        async with self._lock:
            record = self._get(self._redeem(code, "reset-password"))
            record.password_hash = pwd_context.hash(new_password)

    # -------------------------------------------------------------------------
    # Session tokens
    # -------------------------------------------------------------------------

    async def verify_token(self, id_token: str) -> AuthSession:
        try:
            claims = jwt.decode(id_token, self._secret, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            raise IdentityError(AuthErrorCode.INVALID_TOKEN) from e

        record = self._accounts.get(claims.get("sub", ""))
        if record is None:
            raise IdentityError(AuthErrorCode.INVALID_TOKEN)
        return AuthSession(
            id_token=id_token,
            uid=record.uid,
            email_verified=record.email_verified,
            auth_time=datetime.fromtimestamp(claims["auth_time"], tz=timezone.utc),
        )

    def _issue_session(self, record: _AccountRecord) -> AuthSession:
        auth_time = record.last_sign_in or self._clock()
        claims = {
            "sub": record.uid,
            "email": record.email,
            "auth_time": int(auth_time.timestamp()),
            "iat": int(auth_time.timestamp()),
            "exp": int((auth_time + self.token_ttl).timestamp()),
        }
        return AuthSession(
            id_token=jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM),
            uid=record.uid,
            email_verified=record.email_verified,
            auth_time=auth_time,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get(self, uid: str) -> _AccountRecord:
        record = self._accounts.get(uid)
        if record is None:
            raise IdentityError(AuthErrorCode.USER_NOT_FOUND)
        return record

    def _new_code(self, purpose: str, uid: str) -> str:
        code = secrets.token_urlsafe(24)
        self._codes[code] = _ActionCode(purpose, uid, self._clock() + self.action_code_ttl)
        return code

    def _redeem(self, code: str, purpose: str) -> str:
        action = self._codes.get(code)
        if action is None or action.purpose != purpose or action.expires_at < self._clock():
            raise IdentityError(AuthErrorCode.INVALID_ACTION_CODE)
        del self._codes[code]
        return action.uid


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise IdentityError(AuthErrorCode.WEAK_PASSWORD)
