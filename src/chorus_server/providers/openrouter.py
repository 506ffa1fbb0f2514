"""OpenRouter provider client.

OpenRouter speaks the OpenAI chat-completions protocol, so this client
uses openai.AsyncOpenAI pointed at the OpenRouter base URL. It is the
only backend that takes part in the tool execution loop: ``send_with_tools``
passes a function-calling catalog and returns any tool calls the model
requested.
"""

import logging
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from chorus_server.providers.base import (
    build_messages,
    clamp_temperature,
    elapsed_ms,
    role_name,
)
from chorus_server.providers.errors import (
    ProviderError,
    backend_unreachable,
    classify_status_error,
    generation_timeout,
)
from chorus_server.providers.types import AiProvider, TimedResult, Usage
from chorus_server.sessions.types import Message, Role, ToolCallRequest

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_TIMEOUT = 60.0


class OpenRouterProviderClient:
    """Provider client for OpenRouter (OpenAI-compatible API).

    The SDK is created with ``max_retries=0`` so each call is exactly one
    network round-trip.

    Attributes:
        base_url: API base URL (e.g., "https://openrouter.ai/api/v1")
        default_model: Model used when no override is given
        max_tokens: Default completion limit, None for the backend default
        timeout: Per-request timeout in seconds
    """

    provider = AiProvider.OPENROUTER
    supports_tools = True
    language = "en"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        max_tokens: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.default_model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )
        logger.info(f"OpenRouterProviderClient initialized with model: {model}")

    async def send(
        self,
        history: list[Message],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> TimedResult:
        """Send the conversation without tools."""
        result, _ = await self._complete(
            history, None, system_prompt, temperature, max_tokens, model_override
        )
        return result

    async def send_with_tools(
        self,
        history: list[Message],
        tools: list[dict[str, Any]],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> tuple[TimedResult, list[ToolCallRequest]]:
        """Send the conversation together with a function-calling catalog.

        Args:
            history: Conversation history, possibly with tool turns
            tools: Tool definitions in function-calling schema

        Returns:
            The timed result and the tool calls requested by the model
            (empty when the model answered with plain text or on error)
        """
        return await self._complete(
            history, tools, system_prompt, temperature, max_tokens, model_override
        )

    async def _complete(
        self,
        history: list[Message],
        tools: list[dict[str, Any]] | None,
        system_prompt: str,
        temperature: float,
        max_tokens: int | None,
        model_override: str | None,
    ) -> tuple[TimedResult, list[ToolCallRequest]]:
        model = model_override or self.default_model
        request: dict[str, Any] = {
            "model": model,
            "messages": build_messages(history, system_prompt, DEFAULT_SYSTEM_PROMPT),
            "temperature": clamp_temperature(temperature),
        }
        limit = max_tokens if max_tokens is not None else self.max_tokens
        if limit is not None:
            request["max_tokens"] = limit
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        logger.info(
            f"Sending message to OpenRouter: model={model}, "
            f"messages={len(request['messages'])}, tools={len(tools or [])}"
        )

        start = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(**request)
        except Exception as e:
            error = self._map_exception(e, model)
            logger.error(f"Error communicating with OpenRouter: {error.message}")
            return TimedResult.from_error(error, model, elapsed_ms(start)), []

        response_time_ms = elapsed_ms(start)

        if not response.choices:
            logger.warning("OpenRouter returned no choices")
            return (
                TimedResult(
                    text="",
                    usage=_usage(response),
                    response_time_ms=response_time_ms,
                    model_name=getattr(response, "model", None) or model,
                ),
                [],
            )

        message = response.choices[0].message
        tool_calls = _tool_calls(message)
        usage = _usage(response)

        logger.info(
            f"Received response from OpenRouter in {response_time_ms}ms "
            f"with {len(tool_calls)} tool call(s)"
        )
        if usage:
            logger.debug(
                f"Token usage - Prompt: {usage.prompt_tokens}, "
                f"Completion: {usage.completion_tokens}, Total: {usage.total_tokens}"
            )

        result = TimedResult(
            text=message.content or "",
            usage=usage,
            response_time_ms=response_time_ms,
            model_name=getattr(response, "model", None) or model,
        )
        return result, tool_calls

    def _map_exception(self, error: Exception, model: str) -> ProviderError:
        """Classify an exception raised by the openai SDK."""
        display_name = self.provider.display_name

        # APITimeoutError subclasses APIConnectionError
        if isinstance(error, openai.APITimeoutError):
            return generation_timeout(self.timeout)
        if isinstance(error, openai.APIConnectionError):
            return backend_unreachable(display_name, self.base_url)
        if isinstance(error, openai.APIStatusError):
            return classify_status_error(
                display_name, error.status_code, _status_detail(error), model
            )

        return classify_status_error(display_name, 0, str(error), model)

    def localized_role_name(self, role: Role) -> str:
        return role_name(role, self.language)

    async def close(self) -> None:
        await self._client.close()
        logger.debug("OpenRouterProviderClient closed")


def _status_detail(error: "openai.APIStatusError") -> str:
    try:
        text = error.response.text
    except Exception:
        text = ""
    return text or error.message


def _usage(response: Any) -> Usage | None:
    raw = getattr(response, "usage", None)
    if raw is None:
        return None
    return Usage(
        prompt_tokens=getattr(raw, "prompt_tokens", None),
        completion_tokens=getattr(raw, "completion_tokens", None),
        total_tokens=getattr(raw, "total_tokens", None),
    )


def _tool_calls(message: Any) -> list[ToolCallRequest]:
    calls: list[ToolCallRequest] = []
    for call in getattr(message, "tool_calls", None) or []:
        function = getattr(call, "function", None)
        if function is None:
            continue
        calls.append(
            ToolCallRequest(
                id=call.id,
                tool_name=function.name,
                raw_arguments=function.arguments or "{}",
            )
        )
    return calls
