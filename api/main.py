"""
NyayaGPT FastAPI Application

Main API server for the NyayaGPT legal assistant.
Provides endpoints for:
  - Contract review and argument drafting (JSON or file upload)
  - Legal research, search, document summarization and document chat
  - Report downloads
  - Per-user document management
  - Account sign-up, sign-in and maintenance

Every failure is returned as a Notification body ({title, description,
fields?, code?}); the server stays ready for the next request.
"""

import logging
import os
import sys
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from pathlib import Path
from typing import Any, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.exceptions import HTTPException as StarletteHTTPException

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.models import (
    ActionCodeRequest,
    ActionCodeResponse,
    ArgumentExportRequest,
    DocumentListResponse,
    FlowInfo,
    FlowInvocationResponse,
    FlowsResponse,
    FlowTraceSummary,
    Notification,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    SignInRequest,
    SignInResponse,
    SignUpRequest,
    SignUpResponse,
    StoredArgumentRequest,
)
from flows.base import FlowRun
from flows.errors import FlowInputError, GenerationError
from flows.registry import FlowRegistry
from services.container import ServiceContainer
from services.errors import DocumentNotFoundError, IdentityError, StorageError
from shared.models import (
    AuthErrorCode,
    AuthSession,
    ContractReviewInput,
    ContractReviewOutput,
    DocumentChatInput,
    DocumentChatOutput,
    DocumentSummaryInput,
    DocumentSummaryOutput,
    LegalArgumentInput,
    LegalArgumentOutput,
    LegalResearchInput,
    LegalResearchOutput,
    LegalSearchInput,
    SearchResults,
    UploadedDocument,
    UserAccount,
)
from shared.models.media import to_data_uri

# Configure logging
logging.basicConfig(
    level=os.environ.get("NYAYA_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("nyaya.api")


@dataclass
class ApiConfig:
    """Configuration for the HTTP layer."""

    cors_origins: list[str]
    host: str = "0.0.0.0"
    port: int = 8000
    max_upload_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "ApiConfig":
        return cls(
            cors_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
            host=os.environ.get("NYAYA_HOST", "0.0.0.0"),
            port=int(os.environ.get("NYAYA_PORT", "8000")),
            max_upload_bytes=int(os.environ.get("NYAYA_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
        )


api_config = ApiConfig.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Starting NyayaGPT API server")
    yield
    logger.info("Shutting down NyayaGPT API server")


# Create FastAPI app
app = FastAPI(
    title="NyayaGPT API",
    description="AI legal assistant for Indian law",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend (configurable via environment)
app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

_services_lock = threading.Lock()


def get_services(request: Request) -> ServiceContainer:
    """The application's ServiceContainer, built from the environment on first use."""
    services = getattr(request.app.state, "services", None)
    if services is not None:
        return services

    # Runs in the threadpool; the container is built at most once
    with _services_lock:
        services = getattr(request.app.state, "services", None)
        if services is None:
            try:
                services = ServiceContainer.from_env()
            except ValueError as e:
                logger.error(f"Cannot build services: {e}")
                raise HTTPException(status_code=503, detail="The completion service is not configured.") from e
            request.app.state.services = services
    return services


def get_registry(services: ServiceContainer = Depends(get_services)) -> FlowRegistry:
    return FlowRegistry(services)


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> AuthSession:
    """Session for the bearer token on the request."""
    if credentials is None:
        raise IdentityError(AuthErrorCode.INVALID_TOKEN, "Sign in to continue.")
    return await services.identity.verify_token(credentials.credentials)


UPLOAD_CHUNK_BYTES = 1024 * 1024


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, stopping as soon as it passes the configured size limit."""
    limit = api_config.max_upload_bytes
    too_large = HTTPException(
        status_code=413,
        detail=f"File exceeds the {limit // (1024 * 1024)} MB upload limit.",
    )
    if file.size is not None and file.size > limit:
        raise too_large

    data = bytearray()
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > limit:
            raise too_large
    return bytes(data)


# ============================================================================
# Error Notifications
# ============================================================================

IDENTITY_STATUS = {
    AuthErrorCode.EMAIL_ALREADY_IN_USE: 409,
    AuthErrorCode.INVALID_CREDENTIAL: 401,
    AuthErrorCode.USER_NOT_FOUND: 404,
    AuthErrorCode.REQUIRES_RECENT_LOGIN: 403,
    AuthErrorCode.EMAIL_NOT_VERIFIED: 403,
    AuthErrorCode.WEAK_PASSWORD: 400,
    AuthErrorCode.INVALID_TOKEN: 401,
    AuthErrorCode.INVALID_ACTION_CODE: 400,
}


def notify(status_code: int, notification: Notification) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=notification.model_dump(exclude_none=True),
    )


@app.exception_handler(FlowInputError)
async def flow_input_error_handler(request: Request, exc: FlowInputError):
    return notify(422, Notification(
        title="Invalid Input",
        description=next(iter(exc.fields.values()), exc.message),
        fields=exc.fields,
    ))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    fields: dict[str, str] = {}
    for item in exc.errors():
        loc = [str(part) for part in item["loc"] if part not in ("body", "query", "path", "header")]
        fields.setdefault(".".join(loc) or "__root__", str(item["msg"]).removeprefix("Value error, "))
    return notify(422, Notification(
        title="Invalid Input",
        description=next(iter(fields.values()), "The request could not be validated."),
        fields=fields,
    ))


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    logger.error(f"Generation failed: {exc}")
    return notify(502, Notification(
        title="Generation Failed",
        description="An unexpected error occurred. Please try again.",
    ))


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    if isinstance(exc, DocumentNotFoundError):
        return notify(404, Notification(title="Document Not Found", description=str(exc)))
    logger.error(f"Storage failure: {exc}")
    return notify(500, Notification(
        title="Storage Error",
        description="Could not load document content.",
    ))


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError):
    status_code = IDENTITY_STATUS.get(exc.code, 400)
    return notify(status_code, Notification(
        title="Authentication Failed" if status_code == 401 else "Account Action Failed",
        description=exc.message,
        code=exc.code.value,
    ))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return notify(exc.status_code, Notification(
        title=HTTPStatus(exc.status_code).phrase,
        description=str(exc.detail),
    ))


# ============================================================================
# Flow Endpoints
# ============================================================================

@app.post("/api/contracts/review", response_model=ContractReviewOutput)
async def review_contract(payload: ContractReviewInput, registry: FlowRegistry = Depends(get_registry)):
    """
    Summarize key clauses of a contract and report its risks.

    Provide contract_text (at least 100 characters) or contract_data_uri.
    """
    return await registry.run("contract_review", payload)


@app.post("/api/contracts/review/upload", response_model=ContractReviewOutput)
async def review_contract_upload(
    file: UploadFile = File(...),
    contract_text: Optional[str] = Form(None),
    registry: FlowRegistry = Depends(get_registry),
):
    """Contract review of an uploaded document, with optional pasted text."""
    data = await read_upload(file)
    return await registry.run("contract_review", {
        "contract_text": contract_text or None,
        "contract_data_uri": to_data_uri(file.content_type, data),
        "contract_filename": file.filename,
    })


@app.post("/api/arguments", response_model=LegalArgumentOutput)
async def draft_argument(payload: LegalArgumentInput, registry: FlowRegistry = Depends(get_registry)):
    """Draft a legal argument citing Indian statutes and precedents."""
    return await registry.run("legal_argument", payload)


@app.post("/api/arguments/upload", response_model=LegalArgumentOutput)
async def draft_argument_upload(
    prompt: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    registry: FlowRegistry = Depends(get_registry),
):
    """Argument drafting with an uploaded context document."""
    payload: dict[str, Any] = {"prompt": prompt or None}
    if file is not None:
        data = await read_upload(file)
        payload["context_data_uri"] = to_data_uri(file.content_type, data)
        payload["context_filename"] = file.filename
    return await registry.run("legal_argument", payload)


@app.post("/api/research", response_model=LegalResearchOutput)
async def research(payload: LegalResearchInput, registry: FlowRegistry = Depends(get_registry)):
    """
    Resolve a query or case citation to one document and answer it.

    Citations such as '4 SCC 225' resolve to their exact case.
    """
    return await registry.run("legal_research", payload)


@app.post("/api/search", response_model=SearchResults)
async def search(payload: LegalSearchInput, registry: FlowRegistry = Depends(get_registry)):
    """Ordered legal documents matching the query and statute filters."""
    return await registry.run("legal_search", payload)


@app.post("/api/documents/summarize", response_model=DocumentSummaryOutput)
async def summarize_document(payload: DocumentSummaryInput, registry: FlowRegistry = Depends(get_registry)):
    """3-4 paragraph summary from a document's title, snippet and URL."""
    return await registry.run("document_summary", payload)


@app.post("/api/documents/chat", response_model=DocumentChatOutput)
async def chat_about_document(payload: DocumentChatInput, registry: FlowRegistry = Depends(get_registry)):
    """Answer a question about a document given its title and summary."""
    return await registry.run("document_chat", payload)


@app.get("/api/flows", response_model=FlowsResponse)
async def list_flows(registry: FlowRegistry = Depends(get_registry)):
    """Registered flows with their input and output JSON schemas."""
    flows = []
    for name in registry.names():
        flow = registry.get(name)
        flows.append(FlowInfo(
            name=name,
            input_schema=flow.input_model.model_json_schema(by_alias=True),
            output_schema=flow.output_model.model_json_schema(),
        ))
    return FlowsResponse(flows=flows)


@app.post("/api/flows/{name}", response_model=FlowInvocationResponse)
async def invoke_flow(name: str, payload: dict[str, Any], registry: FlowRegistry = Depends(get_registry)):
    """Invoke any registered flow by name with its input mapping."""
    if name not in registry:
        raise HTTPException(status_code=404, detail=f"Unknown flow '{name}'. Available: {', '.join(registry.names())}")
    run: FlowRun = await registry.invoke(name, payload)
    return FlowInvocationResponse(
        flow=name,
        output=run.output.model_dump(mode="json", by_alias=True),
        trace=FlowTraceSummary(
            flow_name=run.trace.flow_name,
            duration_ms=run.trace.duration_ms(),
            llm_calls=len(run.trace.llm_calls),
            tool_calls=jsonable_encoder(run.trace.tool_calls),
        ),
    )


# ============================================================================
# Downloads
# ============================================================================

@app.post("/api/export/contract-report")
async def export_contract_report(report: ContractReviewOutput):
    """Download a contract review as analysis-report.txt."""
    return Response(
        content=generate_contract_report_text(report),
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="analysis-report.txt"'},
    )


@app.post("/api/export/argument")
async def export_argument(request: ArgumentExportRequest):
    """Download a drafted argument as markdown."""
    return Response(
        content=generate_argument_markdown(request.argument, request.prompt),
        media_type="text/markdown",
        headers={"Content-Disposition": 'attachment; filename="legal-argument.md"'},
    )


# ============================================================================
# Documents
# ============================================================================

@app.get("/api/documents", response_model=DocumentListResponse)
async def list_documents(
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    """The signed-in user's documents, newest first."""
    return DocumentListResponse(documents=await services.documents.list(session.uid))


@app.post("/api/documents", response_model=UploadedDocument, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    """Upload a document to the signed-in user's collection."""
    data = await read_upload(file)

    def on_progress(fraction: float):
        logger.debug(f"Upload of {file.filename}: {fraction * 100:.0f}%")

    return await services.documents.upload(
        session.uid,
        file.filename or "document",
        file.content_type or "application/octet-stream",
        data,
        on_progress=on_progress,
    )


@app.delete("/api/documents/{doc_id}", status_code=204)
async def delete_document(
    doc_id: str,
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    """Delete a document (content first, then its record)."""
    await services.documents.delete(session.uid, doc_id)
    return Response(status_code=204)


@app.post("/api/documents/{doc_id}/review", response_model=ContractReviewOutput)
async def review_stored_document(
    doc_id: str,
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
    registry: FlowRegistry = Depends(get_registry),
):
    """Contract review of one of the user's stored documents."""
    document = await services.documents.get(session.uid, doc_id)
    if document.content_type.startswith("text/"):
        payload = {"contract_text": await services.documents.load_text(session.uid, doc_id)}
    else:
        payload = {
            "contract_data_uri": await services.documents.load_data_uri(session.uid, doc_id),
            "contract_filename": document.filename,
        }
    return await registry.run("contract_review", payload)


@app.post("/api/documents/{doc_id}/argument", response_model=LegalArgumentOutput)
async def draft_argument_from_document(
    doc_id: str,
    request: Optional[StoredArgumentRequest] = None,
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
    registry: FlowRegistry = Depends(get_registry),
):
    """Argument drafting with one of the user's stored documents as context."""
    document = await services.documents.get(session.uid, doc_id)
    return await registry.run("legal_argument", {
        "prompt": request.prompt if request else None,
        "context_data_uri": await services.documents.load_data_uri(session.uid, doc_id),
        "context_filename": document.filename,
    })


# ============================================================================
# Accounts
# ============================================================================

@app.post("/api/auth/signup", response_model=SignUpResponse, status_code=201)
async def sign_up(request: SignUpRequest, services: ServiceContainer = Depends(get_services)):
    """
    Create an account and send the email verification message.

    The account cannot sign in until its email is verified.
    """
    account = await services.identity.sign_up(request.email, request.password, display_name=request.name)
    code = await services.identity.send_email_verification(account.uid)
    return SignUpResponse(
        account=account,
        message="A verification email has been sent. Verify your email to sign in.",
        action_code=code,
    )


@app.post("/api/auth/verify-email", response_model=UserAccount)
async def verify_email(request: ActionCodeRequest, services: ServiceContainer = Depends(get_services)):
    return await services.identity.confirm_email(request.code)


@app.post("/api/auth/verify-email/resend", response_model=ActionCodeResponse)
async def resend_email_verification(request: SignInRequest, services: ServiceContainer = Depends(get_services)):
    """Send a fresh verification message. Takes credentials, since an unverified account cannot sign in."""
    code = await services.identity.resend_email_verification(request.email, request.password)
    return ActionCodeResponse(message="A verification email has been sent. Verify your email to sign in.", action_code=code)


@app.post("/api/auth/signin", response_model=SignInResponse)
async def sign_in(request: SignInRequest, services: ServiceContainer = Depends(get_services)):
    session = await services.identity.sign_in(request.email, request.password)
    return SignInResponse(session=session, account=await services.identity.reload(session.uid))


@app.get("/api/auth/me", response_model=UserAccount)
async def current_account(
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    return await services.identity.reload(session.uid)


@app.post("/api/auth/password-reset", response_model=ActionCodeResponse)
async def request_password_reset(request: PasswordResetRequest, services: ServiceContainer = Depends(get_services)):
    code = await services.identity.send_password_reset(request.email)
    return ActionCodeResponse(message="A password reset link has been sent to your email.", action_code=code)


@app.post("/api/auth/password-reset/confirm", response_model=ActionCodeResponse)
async def confirm_password_reset(
    request: PasswordResetConfirmRequest,
    services: ServiceContainer = Depends(get_services),
):
    await services.identity.confirm_password_reset(request.code, request.new_password)
    return ActionCodeResponse(message="Your password has been reset. You can now sign in.")


@app.patch("/api/auth/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    """
    Update the display name and/or email.

    A new email must be verified before the next sign-in, so a verification
    message is sent to it.
    """
    before = await services.identity.reload(session.uid)
    account = await services.identity.update_profile(session.uid, display_name=request.name, email=request.email)
    if account.email == before.email:
        return ProfileUpdateResponse(account=account)

    code = await services.identity.send_email_verification(account.uid)
    return ProfileUpdateResponse(
        account=account,
        message="A verification email has been sent to your new address. Verify it to sign in again.",
        action_code=code,
    )


@app.delete("/api/auth/account", status_code=204)
async def delete_account(
    session: AuthSession = Depends(get_current_session),
    services: ServiceContainer = Depends(get_services),
):
    """Delete the account. Requires a sign-in within the last 5 minutes."""
    await services.identity.delete_account(session)
    return Response(status_code=204)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


# ============================================================================
# Report Generation Helpers
# ============================================================================

def generate_contract_report_text(report: ContractReviewOutput) -> str:
    """Plain-text contract review report."""
    lines = [
        "NyayaGPT Analysis Report",
        "[Key Clause Summary]",
        report.summary.strip(),
        "---",
        "[Risk & Revision Report]",
        report.risk_report.strip(),
    ]
    return "\n".join(lines)


def generate_argument_markdown(argument: str, prompt: Optional[str] = None) -> str:
    """Markdown document for a drafted argument."""
    lines = ["# NyayaGPT Legal Argument", ""]
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    lines.append("")

    if prompt:
        lines.append("## Prompt")
        lines.append("")
        lines.append(f"> {prompt.strip()}")
        lines.append("")

    lines.append("## Argument")
    lines.append("")
    lines.append(argument.strip())
    lines.append("")
    lines.append("---")
    lines.append("*Generated by NyayaGPT. Not a substitute for advice from a qualified advocate.*")

    return "\n".join(lines)


# ============================================================================
# Entry Point
# ============================================================================

def main():
    """Run the API server"""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
