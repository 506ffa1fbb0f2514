"""Provider capability interfaces and shared request helpers.

Every backend implements ProviderClient. Backends that understand the
function-calling schema additionally implement ToolCallingProviderClient.
"""

import time
from typing import Any, Protocol, runtime_checkable

from chorus_server.providers.types import AiProvider, TimedResult
from chorus_server.sessions.types import Message, Role, ToolCallRequest

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

_ROLE_NAMES = {
    "en": {
        Role.SYSTEM: "System",
        Role.USER: "User",
        Role.ASSISTANT: "Assistant",
        Role.TOOL: "Tool",
    },
    "ru": {
        Role.SYSTEM: "Система",
        Role.USER: "Пользователь",
        Role.ASSISTANT: "Ассистент",
        Role.TOOL: "Инструмент",
    },
}


@runtime_checkable
class ProviderClient(Protocol):
    """Send a conversation to one backend and get back timed text."""

    provider: AiProvider
    default_model: str
    supports_tools: bool
    language: str

    async def send(
        self,
        history: list[Message],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> TimedResult: ...

    def localized_role_name(self, role: Role) -> str: ...

    async def close(self) -> None: ...


@runtime_checkable
class ToolCallingProviderClient(ProviderClient, Protocol):
    """A provider whose assistant turns may request tool invocations."""

    async def send_with_tools(
        self,
        history: list[Message],
        tools: list[dict[str, Any]],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> tuple[TimedResult, list[ToolCallRequest]]: ...


def supports_tool_calling(client: ProviderClient) -> bool:
    """Return True if the client can take part in the tool execution loop."""
    return bool(getattr(client, "supports_tools", False)) and isinstance(
        client, ToolCallingProviderClient
    )


def clamp_temperature(temperature: float) -> float:
    """Clamp a temperature into the [0.0, 2.0] range."""
    return max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, temperature))


def role_name(role: Role, language: str = "en") -> str:
    """Human-readable role label in the given language."""
    names = _ROLE_NAMES.get(language, _ROLE_NAMES["en"])
    return names.get(role, role.value)


def build_messages(
    history: list[Message], system_prompt: str, default_prompt: str = ""
) -> list[dict[str, Any]]:
    """Convert history to chat-completions dicts with the system prompt first.

    Args:
        history: Conversation history to send
        system_prompt: Caller-supplied system prompt
        default_prompt: Used when system_prompt is blank; nothing is
            prepended when both are blank

    Returns:
        List of message dicts
    """
    prompt = system_prompt if system_prompt.strip() else default_prompt
    messages = [Message.system(prompt).to_dict()] if prompt else []
    messages.extend(message.to_dict() for message in history)
    return messages


def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since a time.perf_counter() reading."""
    return int((time.perf_counter() - start) * 1000)
