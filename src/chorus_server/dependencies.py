"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject settings, provider clients and the session
registry created during application startup.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from chorus_server.config import ChorusServerSettings
from chorus_server.providers import AiProvider, OllamaProviderClient
from chorus_server.services import ProviderHandlerFactory
from chorus_server.sessions import SessionRegistry
from chorus_server.sessions.store import is_valid_session_id


@lru_cache
def get_settings() -> ChorusServerSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the CHORUS_ prefix.

    Returns:
        ChorusServerSettings: The application configuration settings.
    """
    return ChorusServerSettings()


def _not_initialized(name: str) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={
            "error": {
                "code": "not_initialized",
                "message": f"{name} not initialized",
                "details": {},
            }
        },
    )


def get_ollama_client(request: Request) -> OllamaProviderClient:
    """Get the Ollama client from app state.

    Raises:
        HTTPException: If the Ollama client is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "ollama_client"):
        raise _not_initialized("Ollama client")
    return request.app.state.ollama_client


def get_handler_factory(request: Request) -> ProviderHandlerFactory:
    """Get the ProviderHandlerFactory created at startup.

    Raises:
        HTTPException: If the factory is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "handler_factory"):
        raise _not_initialized("Handler factory")
    return request.app.state.handler_factory


def get_registry(request: Request) -> SessionRegistry:
    """Get the SessionRegistry created at startup.

    Raises:
        HTTPException: If the registry is not initialized (503 Service Unavailable).
    """
    if not hasattr(request.app.state, "registry"):
        raise _not_initialized("Session registry")
    return request.app.state.registry


def resolve_provider(name: str, factory: ProviderHandlerFactory) -> AiProvider:
    """Parse a provider name and check that it is configured.

    Args:
        name: Provider name from the request
        factory: Factory holding the configured clients

    Returns:
        AiProvider: The parsed provider.

    Raises:
        HTTPException: 400 for an unknown provider, 503 for a disabled one.
    """
    try:
        provider = AiProvider.from_string(name)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "code": "unknown_provider",
                    "message": str(e),
                    "details": {"provider": name},
                }
            },
        )

    if provider not in factory.clients:
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "provider_not_configured",
                    "message": f"{provider.display_name} is not configured",
                    "details": {"provider": provider.value},
                }
            },
        )
    return provider


def validate_session_id(session_id: str) -> str:
    """Check a session id taken from the URL path.

    Raises:
        HTTPException: 422 if the id is empty, too long or contains
            characters other than letters, digits, "-" and "_".
    """
    if not is_valid_session_id(session_id):
        raise HTTPException(
            status_code=422,
            detail={
                "error": {
                    "code": "invalid_session_id",
                    "message": "Session id must be 1-64 letters, digits, '-' or '_'",
                    "details": {"session_id": session_id},
                }
            },
        )
    return session_id
