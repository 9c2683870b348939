"""
NyayaGPT Test Configuration

Shared pytest fixtures and configuration for all tests.
"""

import base64
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from flows.base import FlowConfig
from flows.completion import CompletionRequest, CompletionService


# =============================================================================
# Environment Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires OPENAI_API_KEY)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (long-running)"
    )


@pytest.fixture(scope="session")
def project_root_path():
    """Return the project root path."""
    return project_root


@pytest.fixture(scope="session")
def dotenv_loaded():
    """Ensure .env file is loaded."""
    from dotenv import load_dotenv
    load_dotenv(project_root / ".env")
    return True


# =============================================================================
# Stub Completion Service
# =============================================================================

DEFAULT_OUTPUTS: dict[str, dict[str, Any]] = {
    "ContractReviewOutput": {
        "summary": "The agreement is a services contract between two parties for twelve months.",
        "risk_report": "No limitation of liability clause. Suggest capping liability at fees paid.",
    },
    "LegalArgumentOutput": {
        "argument": "Issue: whether the arrest was lawful. Law: Article 21 of the Constitution of India.",
    },
    "LegalResearchOutput": {
        "title": "Maneka Gandhi v. Union of India",
        "summary": "The Supreme Court expanded the meaning of personal liberty under Article 21.",
        "answer": "Procedure established by law must be just, fair and reasonable.",
        "url": "https://indiankanoon.org/doc/1766147/",
    },
    "SearchResults": {
        "results": [
            {
                "docid": "gen-1",
                "title": "Generated Result One",
                "snippet": "A generated snippet.",
                "url": "https://indiankanoon.org/doc/1/",
            },
        ],
    },
    "RankedDocIds": {"docids": []},
    "DocumentSummaryOutput": {
        "summary": "The judgment concerns the basic structure of the Constitution.",
    },
    "DocumentChatOutput": {
        "answer": "The document holds that Parliament cannot alter the basic structure.",
    },
}


class StubCompletionService(CompletionService):
    """
    Completion service test double.

    Responses are looked up by flow name, then by output model name. A
    response may be a dict (serialized to JSON), a raw string, or an
    exception instance to raise.
    """

    def __init__(self, responses: Optional[dict[str, Any]] = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.requests: list[CompletionRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> CompletionRequest:
        return self.requests[-1]

    async def complete(self, request: CompletionRequest) -> str:
        self.requests.append(request)
        response = self.responses.get(
            request.flow_name,
            DEFAULT_OUTPUTS.get(request.output_model.__name__, {}),
        )
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return response
        return json.dumps(response)


# =============================================================================
# Fixtures: Flows and Services
# =============================================================================

@pytest.fixture
def stub_completion():
    """Completion service that records requests and returns canned outputs."""
    return StubCompletionService()


@pytest.fixture
def flow_config():
    """Test configuration for flows."""
    return FlowConfig(
        search_strategy="catalog",
        search_rerank=False,
        search_limit=5,
        log_level="DEBUG",
        trace_enabled=True,
    )


@pytest.fixture
def services(stub_completion, flow_config):
    """In-memory ServiceContainer around the stub completion service."""
    from services.container import ServiceContainer
    return ServiceContainer.in_memory(stub_completion, flow_config, auth_secret="test-secret")


@pytest.fixture
def api_client(services):
    """FastAPI test client wired to the in-memory services."""
    from fastapi.testclient import TestClient
    from api.main import app, get_services

    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Fixtures: Test Data
# =============================================================================

@pytest.fixture
def sample_contract():
    """Contract text long enough to pass input validation."""
    return (
        "SERVICES AGREEMENT. This Agreement is made at Mumbai between Alpha Pvt. Ltd. "
        "(the Client) and Beta Consultants LLP (the Consultant). The Consultant shall "
        "provide software services for twelve months. The Client shall pay INR 5,00,000 "
        "per quarter within 30 days of invoice. Either party may terminate on 30 days notice."
    )


@pytest.fixture
def text_data_uri():
    """Build a text/plain data URI from a string."""
    def build(text: str) -> str:
        return "data:text/plain;base64," + base64.b64encode(text.encode("utf-8")).decode("ascii")
    return build


@pytest.fixture
def pdf_data_uri():
    """A small application/pdf data URI."""
    return "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.4 contract").decode("ascii")


# =============================================================================
# Skip Markers
# =============================================================================

@pytest.fixture(scope="session")
def skip_if_no_openai(dotenv_loaded):
    """Skip test if OpenAI API key is not configured."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key or api_key.startswith("sk-your"):
        pytest.skip("OpenAI API key not configured")
    return True


@pytest.fixture
def make_completion():
    """Factory for stub completion services with custom responses."""
    return StubCompletionService
