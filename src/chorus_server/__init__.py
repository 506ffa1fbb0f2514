"""chorus-server: Headless FastAPI server orchestrating multi-provider LLM conversations.

This package provides a REST API that drives conversations on GigaChat,
OpenRouter and Ollama, with bounded history summarization and MCP tool
calling.
"""

__version__ = "0.1.0"

from chorus_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
