"""Async Ollama provider client.

This module wraps ollama.AsyncClient to implement the ProviderClient
capability for a local Ollama backend. The client is designed to be
created once at startup and reused; it performs exactly one request per
``send`` and maps every failure to a user-facing message.
"""

import logging
import time
from typing import Any

import httpx
import ollama

from chorus_server.providers.base import (
    build_messages,
    clamp_temperature,
    elapsed_ms,
    role_name,
)
from chorus_server.providers.errors import (
    ProviderError,
    ProviderErrorKind,
    backend_unreachable,
    classify_status_error,
    generation_timeout,
)
from chorus_server.providers.types import AiProvider, TimedResult, Usage
from chorus_server.sessions.types import Message, Role

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
DEFAULT_TOP_P = 0.9


def _as_dict(response: Any) -> dict[str, Any]:
    """Normalize an ollama response object into a plain dict."""
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if isinstance(response, dict):
        return response
    return vars(response)


class OllamaProviderClient:
    """Provider client for a local Ollama server.

    No authentication is used. Token usage is reported natively as
    ``prompt_eval_count``/``eval_count`` and remapped into Usage.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        default_model: Model used when no override is given
        timeout: Per-request timeout in seconds
        _client: The underlying ollama.AsyncClient instance
    """

    provider = AiProvider.OLLAMA
    supports_tools = False
    language = "en"

    def __init__(
        self,
        host: str,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        top_p: float = DEFAULT_TOP_P,
    ) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
            model: Default model name
            timeout: Per-request timeout in seconds
            top_p: Top-p sampling parameter sent with every request
        """
        self.host = host
        self.default_model = model
        self.timeout = timeout
        self.top_p = top_p
        self._client = ollama.AsyncClient(host=host, timeout=timeout)
        logger.info(f"OllamaProviderClient initialized with host: {host}, model: {model}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def list_models(self) -> list[str]:
        """List the names of locally installed models.

        Raises:
            ProviderError: If Ollama cannot be reached
        """
        try:
            response = await self._client.list()
        except (ConnectionError, httpx.ConnectError) as e:
            logger.error(f"Failed to list Ollama models: {e}")
            raise backend_unreachable(self.provider.display_name, self.host) from e

        models = getattr(response, "models", None)
        if models is None:
            models = response.get("models", [])

        names: list[str] = []
        for model_obj in models:
            name = getattr(model_obj, "model", None) or (
                model_obj.get("model") or model_obj.get("name")
                if isinstance(model_obj, dict)
                else None
            )
            if name:
                names.append(name)

        logger.info(f"Found {len(names)} local Ollama models")
        return names

    async def send(
        self,
        history: list[Message],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> TimedResult:
        """Send the conversation to Ollama's /api/chat endpoint.

        Args:
            history: Conversation history to send
            system_prompt: Prepended as a system message when not blank
            temperature: Sampling temperature, clamped to [0.0, 2.0]
            max_tokens: Maximum tokens to generate (num_predict)
            model_override: Model to use instead of the default

        Returns:
            TimedResult with text, remapped usage and timing. Failures come
            back as an error-flagged result with usage None.
        """
        model = model_override or self.default_model
        messages = [
            {"role": m["role"], "content": m["content"]}
            for m in build_messages(history, system_prompt)
        ]

        options: dict[str, Any] = {
            "temperature": clamp_temperature(temperature),
            "top_p": self.top_p,
        }
        if max_tokens is not None:
            options["num_predict"] = max_tokens

        logger.info(
            f"Sending message to Ollama: model={model}, messages={len(messages)}, "
            f"temperature={options['temperature']}, maxTokens={max_tokens}"
        )

        start = time.perf_counter()
        try:
            response = _as_dict(
                await self._client.chat(
                    model=model,
                    messages=messages,
                    stream=False,
                    options=options,
                )
            )
        except Exception as e:
            error = self._map_exception(e, model)
            logger.error(f"Error communicating with Ollama API: {e}")
            return TimedResult.from_error(error, model, elapsed_ms(start))

        response_time_ms = elapsed_ms(start)
        text = (response.get("message") or {}).get("content") or ""
        usage = Usage.from_counts(
            response.get("prompt_eval_count"), response.get("eval_count")
        )

        logger.info(f"Received response from Ollama in {response_time_ms}ms: {text[:100]}")
        if usage:
            logger.debug(
                f"Token usage - Prompt: {usage.prompt_tokens}, "
                f"Completion: {usage.completion_tokens}, Total: {usage.total_tokens}"
            )

        return TimedResult(
            text=text,
            usage=usage,
            response_time_ms=response_time_ms,
            model_name=response.get("model") or model,
        )

    def _map_exception(self, error: Exception, model: str) -> ProviderError:
        """Classify an exception raised by ollama.AsyncClient."""
        display_name = self.provider.display_name

        if isinstance(error, ollama.ResponseError):
            return classify_status_error(
                display_name,
                error.status_code,
                error.error,
                model,
                install_hint=f"ollama pull {model}",
            )
        if isinstance(error, httpx.TimeoutException):
            return generation_timeout(self.timeout)
        if isinstance(error, (ConnectionError, httpx.ConnectError)):
            return backend_unreachable(display_name, self.host)

        message = str(error)
        if "Connection refused" in message or "Failed to connect" in message:
            return backend_unreachable(display_name, self.host)
        if "timed out" in message.lower():
            return generation_timeout(self.timeout)

        return ProviderError(ProviderErrorKind.API_ERROR, f"Ollama error: {message}")

    def localized_role_name(self, role: Role) -> str:
        return role_name(role, self.language)

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally which handles cleanup.
        """
        logger.debug("OllamaProviderClient closed")
