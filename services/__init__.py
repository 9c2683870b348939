"""
NyayaGPT Backend Services

Document storage, identity and the ServiceContainer that bundles them with
the completion service.
"""

from .errors import DocumentNotFoundError, IdentityError, StorageError
from .documents import (
    BlobStore,
    DocumentManager,
    DocumentStore,
    InMemoryBlobStore,
    InMemoryDocumentStore,
)
from .identity import (
    IdentityProvider,
    InMemoryIdentityProvider,
    wait_for_email_verification,
)
from .container import ServiceContainer

__all__ = [
    # Errors
    "DocumentNotFoundError",
    "IdentityError",
    "StorageError",
    # Documents
    "BlobStore",
    "DocumentManager",
    "DocumentStore",
    "InMemoryBlobStore",
    "InMemoryDocumentStore",
    # Identity
    "IdentityProvider",
    "InMemoryIdentityProvider",
    "wait_for_email_verification",
    # Container
    "ServiceContainer",
]
