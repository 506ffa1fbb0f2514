"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that replace the
provider clients created by the app lifespan with mocks.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chorus_server.providers import AiProvider
from chorus_server.providers.base import role_name


def _mock_client(provider: AiProvider, default_model: str, supports_tools: bool):
    mock_instance = AsyncMock()
    mock_instance.send = AsyncMock()
    mock_instance.send_with_tools = AsyncMock()
    mock_instance.close = AsyncMock()
    mock_instance.provider = provider
    mock_instance.default_model = default_model
    mock_instance.supports_tools = supports_tools
    mock_instance.language = "en"
    mock_instance.localized_role_name = MagicMock(side_effect=role_name)
    return mock_instance


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaProviderClient for all integration tests.

    This fixture patches the class before the app lifespan runs, ensuring
    the lifespan uses our mock instead of creating a real client.
    """
    with patch("chorus_server.app.OllamaProviderClient") as mock_client_class:
        mock_instance = _mock_client(AiProvider.OLLAMA, "llama3.2:latest", False)
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True
        mock_instance.list_models.return_value = ["llama3.2:latest", "qwen3:14b"]

        mock_client_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture(autouse=True)
def mock_openrouter_client():
    """Mock OpenRouterProviderClient for all integration tests."""
    with patch("chorus_server.app.OpenRouterProviderClient") as mock_client_class:
        mock_instance = _mock_client(AiProvider.OPENROUTER, "openai/gpt-4o-mini", True)
        mock_client_class.return_value = mock_instance
        yield mock_instance
