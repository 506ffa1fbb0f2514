"""Data types for conversation history.

This module defines the message value types shared by every provider:
a single immutable Message plus the tool-call shapes that travel inside
assistant and tool turns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Role of a single turn of dialogue."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model inside an assistant turn.

    Attributes:
        id: Provider-assigned call id, echoed back by the matching tool message
        tool_name: Name of the tool to invoke
        raw_arguments: Arguments as the raw JSON string emitted by the model
    """

    id: str
    tool_name: str
    raw_arguments: str = "{}"


@dataclass(frozen=True)
class ToolCallResult:
    """Textual result of one tool invocation."""

    tool_call_id: str
    content: str


@dataclass(frozen=True)
class Message:
    """One turn of dialogue.

    Messages are immutable once created. A ``tool`` message carries the
    ``tool_call_id`` it answers; an ``assistant`` message may carry the tool
    calls it requested.

    Attributes:
        role: Who produced the turn
        content: Text of the turn (never None)
        tool_call_id: Call id answered by a tool message
        tool_calls: Tool calls requested by an assistant message
        is_summary: True for the system message produced by summarization
    """

    role: Role
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = field(default_factory=tuple)
    is_summary: bool = False

    def __post_init__(self) -> None:
        """Coerce a plain role string into Role."""
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
        if self.role is Role.TOOL and not self.tool_call_id:
            raise ValueError("Tool messages require a tool_call_id")

    @classmethod
    def system(cls, content: str, is_summary: bool = False) -> "Message":
        return cls(role=Role.SYSTEM, content=content, is_summary=is_summary)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str, tool_calls: list[ToolCallRequest] | None = None
    ) -> "Message":
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=tuple(tool_calls or ()),
        )

    @classmethod
    def tool(cls, result: ToolCallResult) -> "Message":
        return cls(
            role=Role.TOOL,
            content=result.content,
            tool_call_id=result.tool_call_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the chat-completions message shape.

        Returns:
            Dict with role and content, plus tool_call_id / tool_calls when set
        """
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}

        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id

        if self.tool_calls:
            data["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.tool_name,
                        "arguments": call.raw_arguments,
                    },
                }
                for call in self.tool_calls
            ]

        return data
