"""Provider clients for the supported LLM backends.

Each backend is wrapped in a client implementing the ProviderClient
capability. Only OpenRouter also implements ToolCallingProviderClient.
"""

from chorus_server.providers.base import (
    ProviderClient,
    ToolCallingProviderClient,
    supports_tool_calling,
)
from chorus_server.providers.errors import ProviderError, ProviderErrorKind
from chorus_server.providers.gigachat import GigaChatProviderClient
from chorus_server.providers.ollama import OllamaProviderClient
from chorus_server.providers.openrouter import OpenRouterProviderClient
from chorus_server.providers.types import AiProvider, TimedResult, Usage

__all__ = [
    "AiProvider",
    "GigaChatProviderClient",
    "OllamaProviderClient",
    "OpenRouterProviderClient",
    "ProviderClient",
    "ProviderError",
    "ProviderErrorKind",
    "TimedResult",
    "ToolCallingProviderClient",
    "Usage",
    "supports_tool_calling",
]
