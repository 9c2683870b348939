"""
Unit Tests for the NyayaGPT API

This module tests:
- api/main.py: flow endpoints, downloads, documents, accounts
- Error notifications for invalid input, generation failures and
  identity failures
- Report generation helpers

The API runs against an in-memory ServiceContainer with a stub completion
service (see tests/conftest.py), so no network access is needed.
"""

import io
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException, UploadFile

import api.main as main_module
from api.main import (
    app,
    generate_argument_markdown,
    generate_contract_report_text,
    get_services,
    read_upload,
)
from services.container import ServiceContainer
from shared.models import ContractReviewOutput


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def failing_client(make_completion, flow_config):
    """Client whose completion service returns unparseable output for every flow."""
    from fastapi.testclient import TestClient

    completion = make_completion({
        name: "I'm sorry, I cannot help with that."
        for name in (
            "contract_review", "legal_argument", "legal_research",
            "legal_search", "document_summary", "document_chat",
        )
    })
    services = ServiceContainer.in_memory(completion, flow_config, auth_secret="test-secret")
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def sign_up_and_in(client, email="advocate@example.in", password="secret123"):
    """Create a verified account and return its bearer headers."""
    response = client.post("/api/auth/signup", json={
        "name": "Advocate",
        "email": email,
        "password": password,
    })
    assert response.status_code == 201
    code = response.json()["action_code"]
    assert client.post("/api/auth/verify-email", json={"code": code}).status_code == 200

    response = client.post("/api/auth/signin", json={"email": email, "password": password})
    assert response.status_code == 200
    token = response.json()["session"]["id_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(api_client):
    return sign_up_and_in(api_client)


# ============================================================================
# FLOW ENDPOINTS
# ============================================================================

class TestContractReviewEndpoint:
    """Tests for POST /api/contracts/review"""

    def test_review_text(self, api_client, stub_completion, sample_contract):
        response = api_client.post("/api/contracts/review", json={"contract_text": sample_contract})

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]
        assert data["risk_report"]
        assert sample_contract in stub_completion.last_request.prompt

    def test_missing_input_notification(self, api_client, stub_completion):
        response = api_client.post("/api/contracts/review", json={})

        assert response.status_code == 422
        data = response.json()
        assert data["title"] == "Invalid Input"
        assert data["description"] == "Provide either contract text or a contract document."
        assert "contract_data_uri" in data["fields"]
        assert stub_completion.call_count == 0

    def test_short_text_notification(self, api_client):
        response = api_client.post("/api/contracts/review", json={"contract_text": "Too short."})

        assert response.status_code == 422
        assert response.json()["fields"]["contract_text"] == "Contract text must be at least 100 characters."

    def test_generation_failure_notification(self, failing_client, sample_contract):
        response = failing_client.post("/api/contracts/review", json={"contract_text": sample_contract})

        assert response.status_code == 502
        assert response.json() == {
            "title": "Generation Failed",
            "description": "An unexpected error occurred. Please try again.",
        }

    def test_server_usable_after_failure(self, api_client, stub_completion, sample_contract):
        stub_completion.responses["contract_review"] = "not json"
        assert api_client.post("/api/contracts/review", json={"contract_text": sample_contract}).status_code == 502

        del stub_completion.responses["contract_review"]
        assert api_client.post("/api/contracts/review", json={"contract_text": sample_contract}).status_code == 200

    def test_upload(self, api_client, stub_completion):
        response = api_client.post(
            "/api/contracts/review/upload",
            files={"file": ("lease.pdf", b"%PDF-1.4 lease deed", "application/pdf")},
        )

        assert response.status_code == 200
        request = stub_completion.last_request
        assert request.media[0].mime_type == "application/pdf"
        assert request.media[0].data == b"%PDF-1.4 lease deed"

    def test_upload_too_large(self, api_client, monkeypatch):
        import api.main as main_module

        monkeypatch.setattr(main_module.api_config, "max_upload_bytes", 8)
        response = api_client.post(
            "/api/contracts/review/upload",
            files={"file": ("lease.pdf", b"%PDF-1.4 lease deed", "application/pdf")},
        )

        assert response.status_code == 413


class TestReadUpload:
    """Tests for the upload size limit"""

    @pytest.mark.asyncio
    async def test_stops_reading_past_limit(self, monkeypatch):
        monkeypatch.setattr(main_module.api_config, "max_upload_bytes", 8)
        monkeypatch.setattr(main_module, "UPLOAD_CHUNK_BYTES", 4)
        body = io.BytesIO(b"x" * 64)

        with pytest.raises(HTTPException) as exc_info:
            await read_upload(UploadFile(body, filename="big.pdf"))

        assert exc_info.value.status_code == 413
        assert body.tell() == 12

    @pytest.mark.asyncio
    async def test_declared_size_rejected_before_reading(self, monkeypatch):
        monkeypatch.setattr(main_module.api_config, "max_upload_bytes", 8)
        body = io.BytesIO(b"x" * 64)

        with pytest.raises(HTTPException) as exc_info:
            await read_upload(UploadFile(body, size=64, filename="big.pdf"))

        assert exc_info.value.status_code == 413
        assert body.tell() == 0

    @pytest.mark.asyncio
    async def test_within_limit(self, monkeypatch):
        monkeypatch.setattr(main_module, "UPLOAD_CHUNK_BYTES", 4)
        data = await read_upload(UploadFile(io.BytesIO(b"%PDF-1.4 lease"), filename="lease.pdf"))
        assert data == b"%PDF-1.4 lease"


class TestOtherFlowEndpoints:
    """Tests for argument, research, search, summary and chat endpoints"""

    def test_argument(self, api_client):
        response = api_client.post("/api/arguments", json={
            "prompt": "My client was arrested without being told the grounds of arrest.",
        })
        assert response.status_code == 200
        assert "Article 21" in response.json()["argument"]

    def test_argument_upload_without_prompt(self, api_client, stub_completion):
        response = api_client.post(
            "/api/arguments/upload",
            files={"file": ("fir.pdf", b"%PDF-1.4 FIR", "application/pdf")},
        )
        assert response.status_code == 200
        assert stub_completion.last_request.media

    def test_argument_requires_source(self, api_client):
        response = api_client.post("/api/arguments/upload", data={"prompt": ""})
        assert response.status_code == 422
        assert response.json()["title"] == "Invalid Input"

    def test_research_citation(self, api_client):
        response = api_client.post("/api/research", json={"query": "4 SCC 225"})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Kesavananda Bharati v. State of Kerala"
        assert data["url"] == "https://indiankanoon.org/doc/257876/"

    def test_search_with_filters(self, api_client):
        response = api_client.post("/api/search", json={"query": "section", "filters": {"ipc": True}})

        assert response.status_code == 200
        results = response.json()["results"]
        assert 0 < len(results) <= 5
        assert all("ipc" in r["tags"] for r in results)

    def test_search_blank_query(self, api_client):
        response = api_client.post("/api/search", json={"query": "   "})
        assert response.status_code == 422
        assert response.json()["description"] == "Please enter a query to start the search."

    def test_summarize(self, api_client, stub_completion):
        response = api_client.post("/api/documents/summarize", json={
            "title": "Kesavananda Bharati v. State of Kerala",
            "snippet": "Basic structure doctrine.",
            "url": "https://indiankanoon.org/doc/257876/",
        })
        assert response.status_code == 200
        assert response.json()["summary"]
        assert "https://indiankanoon.org/doc/257876/" in stub_completion.last_request.prompt

    def test_summarize_invalid_url(self, api_client):
        response = api_client.post("/api/documents/summarize", json={
            "title": "T", "snippet": "S", "url": "not a url",
        })
        assert response.status_code == 422
        assert "url" in response.json()["fields"]

    def test_chat(self, api_client, stub_completion):
        response = api_client.post("/api/documents/chat", json={
            "title": "Kesavananda Bharati v. State of Kerala",
            "summary": "Parliament cannot alter the basic structure.",
            "question": "Can Parliament amend fundamental rights?",
        })
        assert response.status_code == 200
        assert response.json()["answer"]
        assert "Can Parliament amend fundamental rights?" in stub_completion.last_request.prompt


class TestFlowRegistryEndpoints:
    """Tests for GET /api/flows and POST /api/flows/{name}"""

    def test_list_flows(self, api_client):
        response = api_client.get("/api/flows")

        assert response.status_code == 200
        flows = {flow["name"]: flow for flow in response.json()["flows"]}
        assert set(flows) == {
            "contract_review", "legal_argument", "legal_research",
            "legal_search", "document_summary", "document_chat",
        }
        assert "contract-act" in str(flows["legal_search"]["input_schema"])

    def test_invoke_by_name(self, api_client):
        response = api_client.post("/api/flows/legal_search", json={"query": "bail"})

        assert response.status_code == 200
        data = response.json()
        assert data["flow"] == "legal_search"
        assert data["output"]["results"]
        assert data["trace"]["llm_calls"] == 0
        assert data["trace"]["tool_calls"][0]["tool"] == "search_legal_catalog"

    def test_invoke_invalid_payload(self, api_client):
        response = api_client.post("/api/flows/document_chat", json={"title": "T"})

        assert response.status_code == 422
        data = response.json()
        assert data["title"] == "Invalid Input"
        assert {"summary", "question"} <= set(data["fields"])

    def test_unknown_flow(self, api_client):
        response = api_client.post("/api/flows/translate", json={})

        assert response.status_code == 404
        assert response.json()["title"] == "Not Found"
        assert "legal_search" in response.json()["description"]


class TestServicesUnavailable:
    def test_missing_api_key_is_503(self, monkeypatch):
        from fastapi.testclient import TestClient

        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        app.dependency_overrides.clear()
        app.state.services = None

        response = TestClient(app).post("/api/search", json={"query": "bail"})

        assert response.status_code == 503
        assert response.json()["title"] == "Service Unavailable"

    def test_container_built_once_under_concurrent_requests(self, monkeypatch):
        built = []

        def slow_from_env():
            time.sleep(0.05)
            built.append(object())
            return built[-1]

        monkeypatch.setattr(main_module.ServiceContainer, "from_env", slow_from_env)
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(services=None)))

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: get_services(request), range(4)))

        assert len(built) == 1
        assert all(result is built[0] for result in results)


# ============================================================================
# DOWNLOADS
# ============================================================================

class TestExports:
    """Tests for report downloads"""

    def test_contract_report_download(self, api_client):
        response = api_client.post("/api/export/contract-report", json={
            "summary": "Clause 1 sets the term.",
            "risk_report": "No arbitration clause.",
        })

        assert response.status_code == 200
        assert 'filename="analysis-report.txt"' in response.headers["content-disposition"]
        assert response.headers["content-type"].startswith("text/plain")
        text = response.text
        assert text.index("[Key Clause Summary]") < text.index("Clause 1 sets the term.")
        assert text.index("---") < text.index("[Risk & Revision Report]") < text.index("No arbitration clause.")

    def test_argument_download(self, api_client):
        response = api_client.post("/api/export/argument", json={
            "argument": "The arrest violates Article 22(1).",
            "prompt": "Unlawful arrest",
        })

        assert response.status_code == 200
        assert 'filename="legal-argument.md"' in response.headers["content-disposition"]
        assert "The arrest violates Article 22(1)." in response.text


class TestReportHelpers:
    """Tests for report generation helpers"""

    def test_contract_report_text(self):
        text = generate_contract_report_text(ContractReviewOutput(summary=" S ", risk_report="R\n"))
        assert text.splitlines() == [
            "NyayaGPT Analysis Report",
            "[Key Clause Summary]",
            "S",
            "---",
            "[Risk & Revision Report]",
            "R",
        ]

    def test_argument_markdown_without_prompt(self):
        markdown = generate_argument_markdown("Argument body")
        assert markdown.startswith("# NyayaGPT Legal Argument")
        assert "## Prompt" not in markdown
        assert "## Argument" in markdown
        assert "Argument body" in markdown

    def test_argument_markdown_with_prompt(self):
        markdown = generate_argument_markdown("Argument body", "Bail application")
        assert "> Bail application" in markdown


# ============================================================================
# DOCUMENTS
# ============================================================================

class TestDocumentEndpoints:
    """Tests for the per-user document endpoints"""

    def test_requires_token(self, api_client):
        response = api_client.get("/api/documents")

        assert response.status_code == 401
        assert response.json()["code"] == "invalid-token"
        assert response.json()["title"] == "Authentication Failed"

    def test_invalid_token(self, api_client):
        response = api_client.get("/api/documents", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_upload_list_delete(self, api_client, auth_headers):
        first = api_client.post(
            "/api/documents",
            files={"file": ("one.txt", b"first", "text/plain")},
            headers=auth_headers,
        )
        second = api_client.post(
            "/api/documents",
            files={"file": ("two.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_headers,
        )
        assert first.status_code == 201
        assert second.json()["storage_path"].endswith("_two.pdf")
        assert second.json()["file_size"] == 8

        listed = api_client.get("/api/documents", headers=auth_headers).json()["documents"]
        assert {d["filename"] for d in listed} == {"one.txt", "two.pdf"}

        response = api_client.delete(f"/api/documents/{first.json()['id']}", headers=auth_headers)
        assert response.status_code == 204

        listed = api_client.get("/api/documents", headers=auth_headers).json()["documents"]
        assert [d["filename"] for d in listed] == ["two.pdf"]

    def test_delete_missing(self, api_client, auth_headers):
        response = api_client.delete("/api/documents/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["title"] == "Document Not Found"

    def test_documents_isolated_between_users(self, api_client, auth_headers):
        api_client.post(
            "/api/documents",
            files={"file": ("one.txt", b"first", "text/plain")},
            headers=auth_headers,
        )
        other = sign_up_and_in(api_client, email="other@example.in")
        assert api_client.get("/api/documents", headers=other).json()["documents"] == []

    def test_review_stored_text_document(self, api_client, auth_headers, stub_completion, sample_contract):
        uploaded = api_client.post(
            "/api/documents",
            files={"file": ("agreement.txt", sample_contract.encode("utf-8"), "text/plain")},
            headers=auth_headers,
        ).json()

        response = api_client.post(f"/api/documents/{uploaded['id']}/review", headers=auth_headers)

        assert response.status_code == 200
        assert sample_contract in stub_completion.last_request.prompt
        assert stub_completion.last_request.media == []

    def test_review_stored_pdf_document(self, api_client, auth_headers, stub_completion):
        uploaded = api_client.post(
            "/api/documents",
            files={"file": ("agreement.pdf", b"%PDF-1.4 agreement", "application/pdf")},
            headers=auth_headers,
        ).json()

        response = api_client.post(f"/api/documents/{uploaded['id']}/review", headers=auth_headers)

        assert response.status_code == 200
        media = stub_completion.last_request.media
        assert media[0].mime_type == "application/pdf"
        assert media[0].data == b"%PDF-1.4 agreement"

    def test_argument_from_stored_text_document(self, api_client, auth_headers, stub_completion):
        uploaded = api_client.post(
            "/api/documents",
            files={"file": ("fir.txt", "FIR No. 112/2024 lodged at Kothrud police station.".encode("utf-8"), "text/plain")},
            headers=auth_headers,
        ).json()

        response = api_client.post(
            f"/api/documents/{uploaded['id']}/argument",
            json={"prompt": "Argue for bail; the accused has no prior record."},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["argument"]
        request = stub_completion.last_request
        assert request.flow_name == "legal_argument"
        assert "FIR No. 112/2024" in request.prompt
        assert "Argue for bail" in request.prompt
        assert request.media == []

    def test_argument_from_stored_pdf_without_prompt(self, api_client, auth_headers, stub_completion):
        uploaded = api_client.post(
            "/api/documents",
            files={"file": ("chargesheet.pdf", b"%PDF-1.4 chargesheet", "application/pdf")},
            headers=auth_headers,
        ).json()

        response = api_client.post(f"/api/documents/{uploaded['id']}/argument", headers=auth_headers)

        assert response.status_code == 200
        media = stub_completion.last_request.media
        assert media[0].mime_type == "application/pdf"
        assert media[0].data == b"%PDF-1.4 chargesheet"

    def test_argument_from_other_users_document(self, api_client, auth_headers):
        uploaded = api_client.post(
            "/api/documents",
            files={"file": ("fir.pdf", b"%PDF-1.4 FIR", "application/pdf")},
            headers=auth_headers,
        ).json()
        other = sign_up_and_in(api_client, email="other@example.in")

        response = api_client.post(f"/api/documents/{uploaded['id']}/argument", headers=other)
        assert response.status_code == 404


# ============================================================================
# ACCOUNTS
# ============================================================================

class TestAuthEndpoints:
    """Tests for the account endpoints"""

    def test_signup_requires_verification(self, api_client):
        response = api_client.post("/api/auth/signup", json={
            "name": "Advocate",
            "email": "advocate@example.in",
            "password": "secret123",
        })
        assert response.status_code == 201
        assert response.json()["account"]["email_verified"] is False

        response = api_client.post("/api/auth/signin", json={
            "email": "advocate@example.in",
            "password": "secret123",
        })
        assert response.status_code == 403
        assert response.json()["code"] == "email-not-verified"
        assert response.json()["title"] == "Account Action Failed"

    def test_signup_validation(self, api_client):
        response = api_client.post("/api/auth/signup", json={
            "name": "A",
            "email": "not-an-email",
            "password": "secret123",
        })
        assert response.status_code == 422
        assert {"name", "email"} <= set(response.json()["fields"])

    def test_weak_password(self, api_client):
        response = api_client.post("/api/auth/signup", json={
            "name": "Advocate",
            "email": "advocate@example.in",
            "password": "123",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "weak-password"
        assert response.json()["description"] == "Password must be at least 6 characters."

    def test_duplicate_email(self, api_client, auth_headers):
        response = api_client.post("/api/auth/signup", json={
            "name": "Someone",
            "email": "advocate@example.in",
            "password": "secret123",
        })
        assert response.status_code == 409
        assert response.json()["code"] == "email-already-in-use"

    def test_wrong_password(self, api_client, auth_headers):
        response = api_client.post("/api/auth/signin", json={
            "email": "advocate@example.in",
            "password": "wrong-password",
        })
        assert response.status_code == 401
        assert response.json()["code"] == "invalid-credential"

    def test_me(self, api_client, auth_headers):
        response = api_client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["display_name"] == "Advocate"
        assert response.json()["email_verified"] is True

    def test_update_profile(self, api_client, auth_headers):
        response = api_client.patch("/api/auth/profile", json={"name": "Senior Advocate"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["account"]["display_name"] == "Senior Advocate"
        assert response.json()["action_code"] is None

    def test_email_change_then_verify_and_sign_in(self, api_client, auth_headers):
        response = api_client.patch("/api/auth/profile", json={"email": "new@example.in"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["account"]["email_verified"] is False
        code = response.json()["action_code"]
        assert code

        assert api_client.post("/api/auth/verify-email", json={"code": code}).status_code == 200
        response = api_client.post("/api/auth/signin", json={"email": "new@example.in", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["account"]["email"] == "new@example.in"

    def test_resend_verification_after_email_change(self, api_client, auth_headers):
        api_client.patch("/api/auth/profile", json={"email": "new@example.in"}, headers=auth_headers)
        credentials = {"email": "new@example.in", "password": "secret123"}
        assert api_client.post("/api/auth/signin", json=credentials).status_code == 403

        response = api_client.post("/api/auth/verify-email/resend", json=credentials)
        assert response.status_code == 200
        code = response.json()["action_code"]

        assert api_client.post("/api/auth/verify-email", json={"code": code}).status_code == 200
        assert api_client.post("/api/auth/signin", json=credentials).status_code == 200

    def test_resend_replaces_expired_code(self, api_client, services, monkeypatch):
        response = api_client.post("/api/auth/signup", json={
            "name": "Advocate",
            "email": "advocate@example.in",
            "password": "secret123",
        })
        expired = response.json()["action_code"]
        later = datetime.now(timezone.utc) + timedelta(hours=2)
        monkeypatch.setattr(services.identity, "_clock", lambda: later)

        response = api_client.post("/api/auth/verify-email", json={"code": expired})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid-action-code"

        credentials = {"email": "advocate@example.in", "password": "secret123"}
        code = api_client.post("/api/auth/verify-email/resend", json=credentials).json()["action_code"]
        assert api_client.post("/api/auth/verify-email", json={"code": code}).status_code == 200
        assert api_client.post("/api/auth/signin", json=credentials).status_code == 200

    def test_resend_wrong_password(self, api_client):
        api_client.post("/api/auth/signup", json={
            "name": "Advocate",
            "email": "advocate@example.in",
            "password": "secret123",
        })
        response = api_client.post("/api/auth/verify-email/resend", json={
            "email": "advocate@example.in",
            "password": "wrong-password",
        })
        assert response.status_code == 401
        assert response.json()["code"] == "invalid-credential"

    def test_password_reset(self, api_client, auth_headers):
        response = api_client.post("/api/auth/password-reset", json={"email": "advocate@example.in"})
        assert response.status_code == 200
        code = response.json()["action_code"]

        response = api_client.post("/api/auth/password-reset/confirm", json={
            "code": code,
            "new_password": "new-secret",
        })
        assert response.status_code == 200
        assert "action_code" not in response.json() or response.json()["action_code"] is None

        response = api_client.post("/api/auth/signin", json={
            "email": "advocate@example.in",
            "password": "new-secret",
        })
        assert response.status_code == 200

    def test_password_reset_reused_code(self, api_client, auth_headers):
        code = api_client.post("/api/auth/password-reset", json={"email": "advocate@example.in"}).json()["action_code"]
        body = {"code": code, "new_password": "new-secret"}
        assert api_client.post("/api/auth/password-reset/confirm", json=body).status_code == 200

        response = api_client.post("/api/auth/password-reset/confirm", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid-action-code"

    def test_password_reset_unknown_email(self, api_client):
        response = api_client.post("/api/auth/password-reset", json={"email": "nobody@example.in"})
        assert response.status_code == 404
        assert response.json()["code"] == "user-not-found"

    def test_delete_account(self, api_client, auth_headers):
        response = api_client.delete("/api/auth/account", headers=auth_headers)
        assert response.status_code == 204

        response = api_client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 401

    def test_delete_with_stale_token_after_newer_sign_in(self, api_client, auth_headers, services, monkeypatch):
        later = datetime.now(timezone.utc) + timedelta(minutes=6)
        monkeypatch.setattr(services.identity, "_clock", lambda: later)

        response = api_client.post("/api/auth/signin", json={"email": "advocate@example.in", "password": "secret123"})
        fresh = {"Authorization": f"Bearer {response.json()['session']['id_token']}"}

        response = api_client.delete("/api/auth/account", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "requires-recent-login"

        assert api_client.delete("/api/auth/account", headers=fresh).status_code == 204


class TestHealth:
    def test_health(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
