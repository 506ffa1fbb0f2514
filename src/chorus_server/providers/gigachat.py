"""GigaChat provider client.

Talks to the GigaChat chat-completions endpoint over an httpx.AsyncClient
authenticated with an OAuth bearer token. Obtaining and refreshing the
token happens outside this client.
"""

import logging
import time
from typing import Any

import httpx

from chorus_server.providers.base import (
    build_messages,
    clamp_temperature,
    elapsed_ms,
    role_name,
)
from chorus_server.providers.errors import (
    API_ERROR,
    ProviderError,
    ProviderErrorKind,
    backend_unreachable,
    classify_status_error,
    generation_timeout,
    truncate_detail,
)
from chorus_server.providers.types import AiProvider, TimedResult, Usage
from chorus_server.sessions.types import Message, Role

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_MAX_TOKENS = 1024
DEFAULT_TIMEOUT = 60.0


class GigaChatProviderClient:
    """Provider client for the GigaChat cloud API.

    Request body: ``{model, messages, temperature, max_tokens}``. The reply
    text is read from ``choices[0].message.content`` and ``usage`` is
    optional.
    """

    provider = AiProvider.GIGACHAT
    supports_tools = False
    language = "ru"

    def __init__(
        self,
        base_url: str,
        access_token: str,
        model: str = "GigaChat",
        max_tokens: int | None = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the GigaChat client.

        Args:
            base_url: API base URL, without the trailing /chat/completions
            access_token: OAuth bearer token
            model: Default model name
            max_tokens: Default completion limit when the caller gives none
            timeout: Per-request timeout in seconds
            http_client: Pre-built httpx client, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        self.default_model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._access_token = access_token
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        logger.info(f"GigaChatProviderClient initialized with base URL: {self.base_url}")

    async def send(
        self,
        history: list[Message],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> TimedResult:
        """Send the conversation to GigaChat.

        Returns:
            TimedResult; transport and API failures come back error-flagged
        """
        model = model_override or self.default_model
        payload: dict[str, Any] = {
            "model": model,
            "messages": build_messages(history, system_prompt, DEFAULT_SYSTEM_PROMPT),
            "temperature": clamp_temperature(temperature),
        }
        limit = max_tokens if max_tokens is not None else self.max_tokens
        if limit is not None:
            payload["max_tokens"] = limit

        logger.info(
            f"Sending message to GigaChat: model={model}, messages={len(payload['messages'])}"
        )

        start = time.perf_counter()
        try:
            data = await self._post(payload, model)
        except ProviderError as e:
            logger.error(f"GigaChat request failed: {e.message}")
            return TimedResult.from_error(e, model, elapsed_ms(start))

        response_time_ms = elapsed_ms(start)
        choices = data.get("choices") or []
        first = choices[0] if isinstance(choices, list) and choices else {}
        message = (first.get("message") if isinstance(first, dict) else None) or {}
        text = message.get("content") or ""

        usage = None
        if isinstance(data.get("usage"), dict):
            raw = data["usage"]
            usage = Usage(
                prompt_tokens=raw.get("prompt_tokens"),
                completion_tokens=raw.get("completion_tokens"),
                total_tokens=raw.get("total_tokens"),
            )

        logger.info(f"Received response from GigaChat in {response_time_ms}ms")

        return TimedResult(
            text=text,
            usage=usage,
            response_time_ms=response_time_ms,
            model_name=data.get("model") or model,
        )

    async def _post(self, payload: dict[str, Any], model: str) -> dict[str, Any]:
        """Perform the single HTTP call.

        Raises:
            ProviderError: On transport failure, timeout or non-2xx status
        """
        display_name = self.provider.display_name
        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise generation_timeout(self.timeout) from e
        except httpx.TransportError as e:
            raise backend_unreachable(display_name, self.base_url) from e

        if response.is_success:
            try:
                data = response.json()
            except ValueError:
                data = None
            if not isinstance(data, dict):
                logger.error(f"GigaChat returned an unreadable body: {response.text[:200]}")
                raise ProviderError(
                    ProviderErrorKind.API_ERROR,
                    API_ERROR.format(
                        provider=display_name,
                        status=response.status_code,
                        detail=f"unexpected response body: {truncate_detail(response.text)}",
                    ),
                )
            return data

        logger.error(f"GigaChat API error: {response.status_code} - {response.text}")
        raise classify_status_error(
            display_name, response.status_code, response.text, model
        )

    def localized_role_name(self, role: Role) -> str:
        return role_name(role, self.language)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("GigaChatProviderClient closed")
