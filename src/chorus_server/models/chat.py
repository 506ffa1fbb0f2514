"""Pydantic models for chat API requests and responses.

This module defines the request and response schemas for the chat and
history endpoints.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request body for POST /api/v1/chat/{session_id}."""

    message: str = Field(..., min_length=1, description="The user message to send.")
    provider: str = Field(
        default="ollama",
        description="Provider to answer with: gigachat, openrouter or ollama.",
    )
    system_prompt: str = Field(
        default="", description="System prompt for this turn (blank for the default)."
    )
    temperature: float = Field(
        default=0.7, description="Sampling temperature, clamped to [0.0, 2.0]."
    )
    model: str | None = Field(
        default=None, description="Model to use instead of the provider default."
    )
    max_tokens: int | None = Field(
        default=None, ge=1, description="Maximum number of tokens to generate."
    )
    enable_tools: bool = Field(
        default=False,
        description="Offer the tool catalog when the provider supports tool calling.",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "message": "What is the USD exchange rate today?",
                    "provider": "openrouter",
                    "enable_tools": True,
                },
                {
                    "message": "Привет!",
                    "provider": "gigachat",
                    "temperature": 0.5,
                },
            ]
        }
    )


class UsageResponse(BaseModel):
    """Token usage reported by the provider."""

    prompt_tokens: int | None = Field(default=None, description="Prompt tokens")
    completion_tokens: int | None = Field(default=None, description="Completion tokens")
    total_tokens: int | None = Field(default=None, description="Total tokens")

    model_config = ConfigDict(from_attributes=True)


class ChatResponse(BaseModel):
    """Response body for POST /api/v1/chat/{session_id}.

    Provider failures are reported with ``status="error"`` and the
    user-facing error message in ``text``; they are not HTTP errors.
    """

    session_id: str = Field(description="Session identifier")
    provider: str = Field(description="Provider that answered")
    text: str = Field(description="Assistant reply or error message")
    status: Literal["success", "error"] = Field(description="Outcome of the turn")
    usage: UsageResponse | None = Field(default=None, description="Token usage")
    response_time_ms: int = Field(description="Wall-clock time of the turn")
    model: str = Field(description="Model that produced the reply")
    error_kind: str | None = Field(
        default=None, description="Failure category when status is error"
    )


class HistoryMessage(BaseModel):
    """One message of a conversation history."""

    role: Literal["system", "user", "assistant", "tool"] = Field(
        description="Message role"
    )
    content: str = Field(default="", description="Message content")
    tool_call_id: str | None = Field(
        default=None, description="Tool call answered by a tool message"
    )
    is_summary: bool = Field(
        default=False, description="Whether this message is a conversation summary"
    )


class HistoryResponse(BaseModel):
    """Conversation history of one session on one provider."""

    session_id: str = Field(description="Session identifier")
    provider: str = Field(description="Provider the history belongs to")
    messages: list[HistoryMessage] = Field(description="Messages in order")
    history_size: int = Field(description="Number of messages in history")
    message_count: int = Field(
        description="Messages appended since the last clear or summary"
    )


class LoadHistoryRequest(BaseModel):
    """Request body for PUT /api/v1/chat/{session_id}/history."""

    provider: str = Field(description="Provider whose history is replaced")
    messages: list[HistoryMessage] = Field(
        default_factory=list, description="Messages that replace the history"
    )
