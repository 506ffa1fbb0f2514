"""In-memory conversation history for one (session, provider) pair.

The history is literally the prompt: insertion order is significant and it
is only ever mutated through the methods below.
"""

import logging

from chorus_server.sessions.types import Message

logger = logging.getLogger(__name__)


class ConversationHistory:
    """Ordered, mutable sequence of Messages with a turn counter.

    ``message_count`` counts every message appended since the last clear or
    summary, with the summary itself counting as one. It drives the
    summarization trigger and is reported by the orchestrator.

    The history is not internally synchronized. Callers must serialize
    access per (session, provider) key.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])
        self.message_count = len(self._messages)

    def append(self, message: Message) -> None:
        """Append a message to the end of the history."""
        self._messages.append(message)
        self.message_count += 1

    def replace_with_summary(self, summary_text: str) -> Message:
        """Replace the entire history with a single summary system message.

        Args:
            summary_text: Condensed conversation text

        Returns:
            The summary Message now forming the whole history
        """
        summary = Message.system(summary_text, is_summary=True)
        self._messages = [summary]
        self.message_count = 1
        return summary

    def clear(self) -> None:
        """Remove every message."""
        self._messages.clear()
        self.message_count = 0

    def load(self, messages: list[Message]) -> None:
        """Replace the history wholesale with the given messages."""
        self._messages = list(messages)
        self.message_count = len(self._messages)
        logger.debug(f"Loaded {len(self._messages)} messages into history")

    def snapshot(self) -> list[Message]:
        """Return a copy of the current messages."""
        return list(self._messages)

    def size(self) -> int:
        return len(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(list(self._messages))
