"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from chorus_server import __version__
from chorus_server.models.health import HealthResponse
from chorus_server.providers import OllamaProviderClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the current health status and version of chorus-server, the
    connectivity of the local Ollama backend, the enabled providers and the
    number of tools offered by the tool hosts.

    Args:
        request: The FastAPI request object.

    Returns:
        HealthResponse: Health status and version information.
    """
    state = request.app.state
    ollama_connected = None
    ollama_host = None

    if hasattr(state, "ollama_client"):
        ollama_client: OllamaProviderClient = state.ollama_client
        ollama_host = ollama_client.host

        try:
            ollama_connected = await ollama_client.check_connection()
            logger.debug(f"Ollama connectivity check: {ollama_connected}")
        except Exception as e:
            logger.warning(f"Ollama connectivity check failed: {e}")
            ollama_connected = False

    providers: list[str] = []
    if hasattr(state, "handler_factory"):
        providers = [p.value for p in state.handler_factory.enabled_providers]

    tool_count = 0
    tool_host = getattr(state, "tool_host", None)
    if tool_host is not None:
        try:
            tool_count = len(await tool_host.list_tools())
        except Exception as e:
            logger.warning(f"Tool listing failed: {e}")

    return HealthResponse(
        status="ok",
        version=__version__,
        ollama_connected=ollama_connected,
        ollama_host=ollama_host,
        providers=providers,
        tool_count=tool_count,
    )
