"""
API Request/Response Models

Pydantic models for the FastAPI endpoints. Flow endpoints take and return
the flow models from shared.models directly; the models here cover error
notifications, accounts, documents and generic flow invocation.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from shared.models import AuthSession, UploadedDocument, UserAccount


class Notification(BaseModel):
    """Short human-readable error shown to the user in place of a result"""

    title: str
    description: str
    fields: Optional[dict[str, str]] = Field(
        None,
        description="Per-field validation messages keyed by dotted field path"
    )
    code: Optional[str] = Field(None, description="Categorized error code, e.g. 'email-not-verified'")


# ============================================================================
# Flows
# ============================================================================

class FlowInfo(BaseModel):
    """A registered flow and its declared shapes"""

    name: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]


class FlowsResponse(BaseModel):
    """Response model for GET /api/flows"""

    flows: list[FlowInfo]


class FlowTraceSummary(BaseModel):
    flow_name: str
    duration_ms: Optional[float] = None
    llm_calls: int = 0
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)


class FlowInvocationResponse(BaseModel):
    """Response model for POST /api/flows/{name}"""

    flow: str
    output: dict[str, Any]
    trace: FlowTraceSummary


class ArgumentExportRequest(BaseModel):
    """Request model for POST /api/export/argument"""

    argument: str = Field(..., min_length=1)
    prompt: Optional[str] = Field(None, description="The drafting prompt, included as a header when given")


# ============================================================================
# Documents
# ============================================================================

class DocumentListResponse(BaseModel):
    """Response model for GET /api/documents (newest first)"""

    documents: list[UploadedDocument]


# ============================================================================
# Accounts
# ============================================================================

class SignUpRequest(BaseModel):
    """Request model for POST /api/auth/signup"""

    name: str = Field(..., min_length=2, description="Display name")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=1)


class SignUpResponse(BaseModel):
    """
    Response model for POST /api/auth/signup

    ``action_code`` is the verification code carried by the verification
    message; the in-memory identity provider returns it here.
    """

    account: UserAccount
    message: str
    action_code: Optional[str] = None


class SignInRequest(BaseModel):
    """Request model for POST /api/auth/signin"""

    email: str
    password: str


class SignInResponse(BaseModel):
    session: AuthSession
    account: UserAccount


class ActionCodeRequest(BaseModel):
    """Request model for POST /api/auth/verify-email"""

    code: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    """Request model for POST /api/auth/password-reset"""

    email: str


class PasswordResetConfirmRequest(BaseModel):
    """Request model for POST /api/auth/password-reset/confirm"""

    code: str = Field(..., min_length=1)
    new_password: str


class ActionCodeResponse(BaseModel):
    message: str
    action_code: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Request model for PATCH /api/auth/profile"""

    name: Optional[str] = Field(None, min_length=2)
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ProfileUpdateResponse(BaseModel):
    """
    Response model for PATCH /api/auth/profile

    Changing the email clears its verification; ``message`` and
    ``action_code`` then carry the verification message for the new address.
    """

    account: UserAccount
    message: Optional[str] = None
    action_code: Optional[str] = None


class StoredArgumentRequest(BaseModel):
    """Request model for POST /api/documents/{doc_id}/argument"""

    prompt: Optional[str] = Field(None, description="The legal situation; the stored document provides context")
