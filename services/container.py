"""
Service Container

Explicitly constructed bundle of the collaborators NyayaGPT depends on:
the completion service, document storage and the identity provider. The
API builds one at startup and passes it to the FlowRegistry; tests build
one from stubs.
"""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from typing import Callable, Optional

from dotenv import load_dotenv

from flows.base import CatalogToolClient, FlowConfig
from flows.completion import CompletionConfig, CompletionService, OpenAICompletionService
from services.documents import DocumentManager, InMemoryBlobStore, InMemoryDocumentStore
from services.identity import IdentityProvider, InMemoryIdentityProvider

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Collaborators shared by every flow and endpoint."""

    completion: CompletionService
    documents: DocumentManager
    identity: IdentityProvider
    flow_config: FlowConfig = field(default_factory=FlowConfig.from_env)
    catalog_factory: Callable[..., CatalogToolClient] = CatalogToolClient

    @classmethod
    def in_memory(
        cls,
        completion: CompletionService,
        flow_config: Optional[FlowConfig] = None,
        auth_secret: Optional[str] = None,
    ) -> ServiceContainer:
        """Container with in-memory document and identity backends."""
        if not auth_secret:
            auth_secret = secrets.token_urlsafe(32)
            logger.warning("NYAYA_AUTH_SECRET not set; session tokens will not survive a restart")
        return cls(
            completion=completion,
            documents=DocumentManager(InMemoryDocumentStore(), InMemoryBlobStore()),
            identity=InMemoryIdentityProvider(secret=auth_secret),
            flow_config=flow_config or FlowConfig.from_env(),
        )

    @classmethod
    def from_env(cls) -> ServiceContainer:
        """
        Build the default container from environment variables.

        Raises:
            ValueError: OPENAI_API_KEY is not set
        """
        return cls.in_memory(
            completion=OpenAICompletionService(CompletionConfig.from_env()),
            flow_config=FlowConfig.from_env(),
            auth_secret=os.getenv("NYAYA_AUTH_SECRET"),
        )
