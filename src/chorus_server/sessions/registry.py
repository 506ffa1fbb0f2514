"""Registry of live conversation handlers.

Handlers are keyed by (session_id, provider) and created lazily on first
use. The registry also hands out one asyncio.Lock per key; the HTTP layer
holds it for the duration of a call so turns on the same session and
provider never interleave.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chorus_server.providers.types import AiProvider
    from chorus_server.services.provider_handler import ProviderHandler

logger = logging.getLogger(__name__)

HandlerKey = tuple[str, "AiProvider"]


class SessionRegistry:
    """Map (session_id, provider) to a ProviderHandler and its lock."""

    def __init__(
        self, factory: Callable[[str, "AiProvider"], "ProviderHandler"]
    ) -> None:
        """Initialize the registry.

        Args:
            factory: Called with (session_id, provider) to build a handler
        """
        self._factory = factory
        self._handlers: dict[HandlerKey, "ProviderHandler"] = {}
        self._locks: dict[HandlerKey, asyncio.Lock] = {}

    def get_or_create(self, session_id: str, provider: "AiProvider") -> "ProviderHandler":
        """Return the handler for a key, creating it on first use."""
        key = (session_id, provider)
        handler = self._handlers.get(key)
        if handler is None:
            handler = self._factory(session_id, provider)
            self._handlers[key] = handler
            logger.info(f"Created handler for session={session_id}, provider={provider.value}")
        return handler

    def get(self, session_id: str, provider: "AiProvider") -> "ProviderHandler | None":
        return self._handlers.get((session_id, provider))

    def lock(self, session_id: str, provider: "AiProvider") -> asyncio.Lock:
        """Return the lock serializing calls for a key."""
        key = (session_id, provider)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def remove(self, session_id: str, provider: "AiProvider") -> bool:
        """Forget the handler for a key.

        Returns:
            True if a handler was registered
        """
        key = (session_id, provider)
        self._locks.pop(key, None)
        removed = self._handlers.pop(key, None) is not None
        if removed:
            logger.info(
                f"Removed handler for session={session_id}, provider={provider.value} "
                f"({len(self)} left)"
            )
        return removed

    def __len__(self) -> int:
        return len(self._handlers)
