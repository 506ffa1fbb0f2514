"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from chorus_server.models.chat import (
    ChatRequest,
    ChatResponse,
    HistoryMessage,
    HistoryResponse,
    LoadHistoryRequest,
    UsageResponse,
)
from chorus_server.models.health import HealthResponse
from chorus_server.models.providers import (
    LocalModelListResponse,
    ProviderInfo,
    ProviderListResponse,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "HealthResponse",
    "HistoryMessage",
    "HistoryResponse",
    "LoadHistoryRequest",
    "LocalModelListResponse",
    "ProviderInfo",
    "ProviderListResponse",
    "UsageResponse",
]
