"""
NyayaGPT Web API Package

FastAPI-based web interface for NyayaGPT.

Usage:
    # Start the server
    uvicorn api.main:app --reload

    # Or via entry point
    nyaya-api
"""

from api.main import app, get_registry, get_services
from api.models import (
    ArgumentExportRequest,
    DocumentListResponse,
    FlowInfo,
    FlowInvocationResponse,
    FlowsResponse,
    Notification,
    SignInRequest,
    SignUpRequest,
)

__all__ = [
    "app",
    "get_registry",
    "get_services",
    "ArgumentExportRequest",
    "DocumentListResponse",
    "FlowInfo",
    "FlowInvocationResponse",
    "FlowsResponse",
    "Notification",
    "SignInRequest",
    "SignUpRequest",
]
