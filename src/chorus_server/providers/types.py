"""Type definitions shared by all provider clients.

This module contains the provider enum and the value types every provider
call returns: token Usage and the TimedResult wrapper.
"""

from dataclasses import dataclass
from enum import Enum

from chorus_server.providers.errors import ProviderError, ProviderErrorKind


class AiProvider(str, Enum):
    """Backends supported by the orchestrator."""

    GIGACHAT = "gigachat"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"

    @property
    def display_name(self) -> str:
        return {
            AiProvider.GIGACHAT: "GigaChat",
            AiProvider.OPENROUTER: "OpenRouter",
            AiProvider.OLLAMA: "Ollama (Local)",
        }[self]

    @classmethod
    def from_string(cls, value: str) -> "AiProvider":
        """Parse a provider name case-insensitively.

        Raises:
            ValueError: If the name is not a known provider
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown provider '{value}'. Must be one of: {valid}")


def _add_optional(a: int | None, b: int | None) -> int | None:
    if a is None and b is None:
        return None
    return (a or 0) + (b or 0)


@dataclass(frozen=True)
class Usage:
    """Token usage of one or more provider calls.

    All fields are optional because not every backend reports them.
    """

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_counts(
        cls, prompt_tokens: int | None, completion_tokens: int | None
    ) -> "Usage | None":
        """Build usage from prompt/completion counts.

        The total is derived only when both counts are known.

        Returns:
            Usage, or None when neither count is reported
        """
        if prompt_tokens is None and completion_tokens is None:
            return None
        total = None
        if prompt_tokens is not None and completion_tokens is not None:
            total = prompt_tokens + completion_tokens
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total,
        )

    def __add__(self, other: "Usage | None") -> "Usage":
        if other is None:
            return self
        return Usage(
            prompt_tokens=_add_optional(self.prompt_tokens, other.prompt_tokens),
            completion_tokens=_add_optional(
                self.completion_tokens, other.completion_tokens
            ),
            total_tokens=_add_optional(self.total_tokens, other.total_tokens),
        )


@dataclass(frozen=True)
class TimedResult:
    """The unit of value returned by every provider and orchestrator call.

    Attributes:
        text: Assistant text, or the user-facing error message when is_error
        usage: Token usage, always None for error results
        response_time_ms: Wall-clock time of the call in milliseconds
        model_name: Model that produced (or was asked to produce) the text
        is_error: True when text is a mapped provider failure
        error_kind: Category of the failure when is_error
    """

    text: str
    usage: Usage | None
    response_time_ms: int
    model_name: str
    is_error: bool = False
    error_kind: ProviderErrorKind | None = None

    @classmethod
    def from_error(
        cls, error: ProviderError, model_name: str, response_time_ms: int = 0
    ) -> "TimedResult":
        return cls(
            text=error.message,
            usage=None,
            response_time_ms=response_time_ms,
            model_name=model_name,
            is_error=True,
            error_kind=error.kind,
        )
