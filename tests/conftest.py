"""Pytest configuration and shared fixtures for chorus-server tests.

This module provides common fixtures used across all test modules,
including test app creation, async client setup and provider client stubs.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chorus_server import create_app
from chorus_server.config import ChorusServerSettings
from chorus_server.providers.base import role_name
from chorus_server.providers.types import AiProvider, TimedResult, Usage


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with an isolated temporary data directory.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        ChorusServerSettings: Settings instance configured for testing.
    """
    return ChorusServerSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        ollama_model="llama3.2:latest",
        openrouter_api_key="test-openrouter-key",
        openrouter_model="openai/gpt-4o-mini",
        data_dir=str(tmp_path),
        history_dir="chat_history",
        summarization_threshold=10,
        mcp_server_urls=[],
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance."""
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def make_result():
    """Build TimedResult values for stubbed provider calls."""

    def _make(
        text: str = "Hello!",
        prompt_tokens: int | None = 10,
        completion_tokens: int | None = 5,
        model_name: str = "test-model",
        response_time_ms: int = 42,
    ) -> TimedResult:
        return TimedResult(
            text=text,
            usage=Usage.from_counts(prompt_tokens, completion_tokens),
            response_time_ms=response_time_ms,
            model_name=model_name,
        )

    return _make


@pytest.fixture
def make_provider_client():
    """Build AsyncMock provider clients with the ProviderClient attributes set."""

    def _make(
        provider: AiProvider = AiProvider.OPENROUTER,
        supports_tools: bool = False,
        language: str = "en",
        default_model: str = "test-model",
    ) -> AsyncMock:
        client = AsyncMock()
        # Protocol isinstance checks look attributes up statically
        client.send = AsyncMock()
        client.send_with_tools = AsyncMock()
        client.close = AsyncMock()
        client.provider = provider
        client.default_model = default_model
        client.supports_tools = supports_tools
        client.language = language
        client.localized_role_name = MagicMock(
            side_effect=lambda role: role_name(role, language)
        )
        return client

    return _make
