"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chorus_server.config import ChorusServerSettings
from chorus_server.providers import (
    AiProvider,
    GigaChatProviderClient,
    OllamaProviderClient,
    OpenRouterProviderClient,
    ProviderClient,
)
from chorus_server.routers import chat, health, providers
from chorus_server.services import ProviderHandlerFactory, Summarizer
from chorus_server.sessions import JsonHistoryStore, SessionRegistry
from chorus_server.tools import CompositeToolHost, McpToolHost, ToolInvocationError

logger = logging.getLogger(__name__)


def build_provider_clients(
    settings: ChorusServerSettings,
) -> dict[AiProvider, ProviderClient]:
    """Create a client for every provider that has what it needs.

    Ollama is always created. Cloud providers are skipped when their
    credentials are missing.
    """
    clients: dict[AiProvider, ProviderClient] = {
        AiProvider.OLLAMA: OllamaProviderClient(
            host=settings.ollama_host,
            model=settings.ollama_model,
            timeout=settings.ollama_timeout,
            top_p=settings.ollama_top_p,
        )
    }

    if settings.gigachat_access_token:
        clients[AiProvider.GIGACHAT] = GigaChatProviderClient(
            base_url=settings.gigachat_base_url,
            access_token=settings.gigachat_access_token,
            model=settings.gigachat_model,
            max_tokens=settings.gigachat_max_tokens,
            timeout=settings.gigachat_timeout,
        )
    else:
        logger.info("GigaChat disabled: no access token configured")

    if settings.openrouter_api_key:
        clients[AiProvider.OPENROUTER] = OpenRouterProviderClient(
            base_url=settings.openrouter_base_url,
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
            max_tokens=settings.openrouter_max_tokens,
            timeout=settings.openrouter_timeout,
        )
    else:
        logger.info("OpenRouter disabled: no API key configured")

    return clients


async def connect_tool_hosts(urls: list[str]) -> list[McpToolHost]:
    """Connect to each MCP server, skipping the ones that are unavailable."""
    hosts: list[McpToolHost] = []
    for url in urls:
        host = McpToolHost(url)
        try:
            await host.connect()
        except ToolInvocationError as e:
            logger.warning(f"Tool host unavailable, skipping: {e}")
            continue
        hosts.append(host)
    return hosts


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Provider clients, tool host sessions, the history store and the session
    registry are created once at startup and stored in app.state for reuse
    across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ChorusServerSettings = app.state.settings

    # Startup: provider clients
    clients = build_provider_clients(settings)
    app.state.provider_clients = clients
    app.state.ollama_client = clients[AiProvider.OLLAMA]
    logger.info(
        f"Initialized provider clients: {', '.join(p.value for p in clients)}"
    )

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    # Tool hosts
    mcp_hosts: list[McpToolHost] = []
    tool_host = None
    if settings.tools_enabled and settings.mcp_server_urls:
        mcp_hosts = await connect_tool_hosts(settings.mcp_server_urls)
        if mcp_hosts:
            tool_host = CompositeToolHost(mcp_hosts)
    app.state.tool_host = tool_host

    # Conversation state
    store = None
    if settings.history_log_enabled:
        store = JsonHistoryStore(settings.resolved_history_dir)

    summarizer = None
    if settings.summarization_enabled:
        summarizer = Summarizer(
            threshold=settings.summarization_threshold,
            temperature=settings.summarization_temperature,
        )
    summarized_providers = frozenset(
        provider
        for provider in AiProvider
        if provider is not AiProvider.OLLAMA or settings.ollama_summarization_enabled
    )

    factory = ProviderHandlerFactory(
        clients=clients,
        summarizer=summarizer,
        summarized_providers=summarized_providers,
        tool_host=tool_host,
        max_tool_iterations=settings.max_tool_iterations,
        store=store,
    )
    app.state.handler_factory = factory
    app.state.registry = SessionRegistry(factory.create)

    yield

    # Shutdown: Clean up resources
    for host in mcp_hosts:
        await host.disconnect()
    for client in clients.values():
        await client.close()
    logger.info("Provider clients closed")


def create_app(settings: ChorusServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ChorusServerSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from chorus_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="chorus-server",
        description="Headless FastAPI server orchestrating conversations and tool calls "
        "across GigaChat, OpenRouter and Ollama",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(providers.router)
    app.include_router(chat.router)

    return app
