"""Chat API endpoints.

This module provides the endpoint that drives one conversation turn on a
provider. Further endpoints inspect, clear, replace and restore the
per-provider history of a session, or release its in-memory handler.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from chorus_server.dependencies import (
    get_handler_factory,
    get_registry,
    resolve_provider,
    validate_session_id,
)
from chorus_server.models.chat import (
    ChatRequest,
    ChatResponse,
    HistoryMessage,
    HistoryResponse,
    LoadHistoryRequest,
    UsageResponse,
)
from chorus_server.providers import AiProvider, TimedResult
from chorus_server.services import ProviderHandler, ProviderHandlerFactory
from chorus_server.sessions import Message, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])

FactoryDep = Annotated[ProviderHandlerFactory, Depends(get_handler_factory)]
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
SessionIdDep = Annotated[str, Depends(validate_session_id)]


def _chat_response(
    session_id: str, provider: AiProvider, result: TimedResult
) -> ChatResponse:
    return ChatResponse(
        session_id=session_id,
        provider=provider.value,
        text=result.text,
        status="error" if result.is_error else "success",
        usage=UsageResponse.model_validate(result.usage) if result.usage else None,
        response_time_ms=result.response_time_ms,
        model=result.model_name,
        error_kind=result.error_kind.value if result.error_kind else None,
    )


def _history_response(handler: ProviderHandler) -> HistoryResponse:
    return HistoryResponse(
        session_id=handler.session_id,
        provider=handler.provider.value,
        messages=[
            HistoryMessage(
                role=message.role.value,
                content=message.content,
                tool_call_id=message.tool_call_id,
                is_summary=message.is_summary,
            )
            for message in handler.history
        ],
        history_size=handler.get_history_size(),
        message_count=handler.get_message_count(),
    )


@router.post("/{session_id}", response_model=ChatResponse)
async def send_message(
    session_id: SessionIdDep,
    request_body: ChatRequest,
    factory: FactoryDep,
    registry: RegistryDep,
) -> ChatResponse:
    """Send a message and receive the assistant reply.

    Provider failures are returned with status "error" rather than as
    HTTP errors.

    Args:
        session_id: The session to chat in
        request_body: Chat request containing message and options

    Returns:
        ChatResponse with the reply, usage and timing

    Raises:
        HTTPException: 400 for an unknown provider, 503 for a disabled one
    """
    provider = resolve_provider(request_body.provider, factory)

    async with registry.lock(session_id, provider):
        handler = registry.get_or_create(session_id, provider)
        result = await handler.process_message(
            user_text=request_body.message,
            system_prompt=request_body.system_prompt,
            temperature=request_body.temperature,
            model_override=request_body.model,
            max_tokens=request_body.max_tokens,
            tools_enabled=request_body.enable_tools,
        )

    logger.info(
        f"Chat turn finished: session={session_id}, provider={provider.value}, "
        f"error={result.is_error}"
    )
    return _chat_response(session_id, provider, result)


@router.get("/{session_id}/history", response_model=HistoryResponse)
async def get_history(
    session_id: SessionIdDep,
    factory: FactoryDep,
    registry: RegistryDep,
    provider: str = Query(..., description="Provider whose history to return"),
) -> HistoryResponse:
    """Get the in-memory history of a session on one provider.

    Unknown sessions report an empty history without creating a handler.
    """
    parsed = resolve_provider(provider, factory)
    handler = registry.get(session_id, parsed)
    if handler is None:
        return HistoryResponse(
            session_id=session_id,
            provider=parsed.value,
            messages=[],
            history_size=0,
            message_count=0,
        )
    return _history_response(handler)


@router.delete("/{session_id}/history", response_model=HistoryResponse)
async def clear_history(
    session_id: SessionIdDep,
    factory: FactoryDep,
    registry: RegistryDep,
    provider: str = Query(..., description="Provider whose history to clear"),
) -> HistoryResponse:
    """Clear the history of a session on one provider."""
    parsed = resolve_provider(provider, factory)

    async with registry.lock(session_id, parsed):
        handler = registry.get_or_create(session_id, parsed)
        handler.clear_history()

    return _history_response(handler)


@router.put("/{session_id}/history", response_model=HistoryResponse)
async def load_history(
    session_id: SessionIdDep,
    request_body: LoadHistoryRequest,
    factory: FactoryDep,
    registry: RegistryDep,
) -> HistoryResponse:
    """Replace the history of a session with the supplied messages.

    Raises:
        HTTPException: 422 if a message is invalid (e.g., a tool message
            without tool_call_id)
    """
    parsed = resolve_provider(request_body.provider, factory)

    try:
        messages = [
            Message(
                role=item.role,
                content=item.content,
                tool_call_id=item.tool_call_id,
                is_summary=item.is_summary,
            )
            for item in request_body.messages
        ]
    except ValueError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": {
                    "code": "invalid_message",
                    "message": str(e),
                    "details": {},
                }
            },
        )

    async with registry.lock(session_id, parsed):
        handler = registry.get_or_create(session_id, parsed)
        handler.load_history(messages)

    return _history_response(handler)


@router.post("/{session_id}/history/restore", response_model=HistoryResponse)
async def restore_history(
    session_id: SessionIdDep,
    factory: FactoryDep,
    registry: RegistryDep,
    provider: str = Query(..., description="Provider whose history to restore"),
) -> HistoryResponse:
    """Reload the history of a session from the persisted log."""
    parsed = resolve_provider(provider, factory)

    async with registry.lock(session_id, parsed):
        handler = registry.get_or_create(session_id, parsed)
        restored = handler.restore_history()

    logger.info(f"Restored {restored} messages for session={session_id}, provider={parsed.value}")
    return _history_response(handler)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: SessionIdDep,
    factory: FactoryDep,
    registry: RegistryDep,
    provider: str = Query(..., description="Provider whose handler to release"),
) -> Response:
    """Release the in-memory handler of a session on one provider.

    The persisted log is kept, so the history can be restored later.

    Raises:
        HTTPException: 404 if the session has no live handler
    """
    parsed = resolve_provider(provider, factory)

    async with registry.lock(session_id, parsed):
        removed = registry.remove(session_id, parsed)

    if not removed:
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "code": "session_not_found",
                    "message": f"Session {session_id} has no {parsed.display_name} handler",
                    "details": {"session_id": session_id, "provider": parsed.value},
                }
            },
        )

    logger.info(f"Released handler for session={session_id}, provider={parsed.value}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
