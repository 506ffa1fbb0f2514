"""Durable append log of conversation history.

The orchestrator emits every history mutation into a HistoryStore; the
store is read back only by an explicit restore request. JsonHistoryStore
keeps one JSON file per (session, provider):

{
    "session_id": "...",
    "provider": "ollama",
    "messages": [{"role": ..., "content": ..., "is_summary": ..., "timestamp": ...}]
}
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


def is_valid_session_id(session_id: str) -> bool:
    return SESSION_ID_PATTERN.fullmatch(session_id) is not None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StoredMessage:
    """One entry of the persisted history log."""

    role: str
    content: str
    is_summary: bool = False
    timestamp: str = ""


class HistoryStore(Protocol):
    """Persistence boundary for per-provider chat history."""

    def save_message(
        self, session_id: str, provider: str, role: str, content: str
    ) -> None: ...

    def replace_with_summary(
        self, session_id: str, provider: str, role: str, content: str
    ) -> None: ...

    def clear(self, session_id: str, provider: str) -> None: ...

    def get_history(self, session_id: str, provider: str) -> list[StoredMessage]: ...


class JsonHistoryStore:
    """HistoryStore backed by JSON files on disk.

    Attributes:
        history_dir: Directory holding one sub-directory per session
    """

    def __init__(self, history_dir: Path) -> None:
        self.history_dir = history_dir
        self.history_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str, provider: str) -> Path:
        """Return the log file for a key.

        Raises:
            ValueError: If the session id is malformed or the path would
                leave the history directory
        """
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        file_path = (self.history_dir / session_id / f"{provider}.json").resolve()
        if not file_path.is_relative_to(self.history_dir.resolve()):
            raise ValueError(f"History path escapes {self.history_dir}: {file_path}")
        return file_path

    def _read(self, session_id: str, provider: str) -> list[StoredMessage]:
        file_path = self._path(session_id, provider)
        if not file_path.exists():
            return []

        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return [StoredMessage(**entry) for entry in data.get("messages", [])]

    def _write(
        self, session_id: str, provider: str, messages: list[StoredMessage]
    ) -> None:
        file_path = self._path(session_id, provider)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        data: dict[str, Any] = {
            "session_id": session_id,
            "provider": provider,
            "messages": [asdict(message) for message in messages],
        }

        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def save_message(
        self, session_id: str, provider: str, role: str, content: str
    ) -> None:
        """Append one message to the log."""
        messages = self._read(session_id, provider)
        messages.append(StoredMessage(role=role, content=content, timestamp=_now()))
        self._write(session_id, provider, messages)
        logger.debug(f"Message saved: session={session_id}, provider={provider}, role={role}")

    def replace_with_summary(
        self, session_id: str, provider: str, role: str, content: str
    ) -> None:
        """Replace the whole log with a single summary entry."""
        summary = StoredMessage(
            role=role, content=content, is_summary=True, timestamp=_now()
        )
        self._write(session_id, provider, [summary])
        logger.info(f"History replaced with summary: session={session_id}, provider={provider}")

    def clear(self, session_id: str, provider: str) -> None:
        """Delete the log for one (session, provider)."""
        file_path = self._path(session_id, provider)
        if file_path.exists():
            file_path.unlink()
        logger.info(f"History cleared: session={session_id}, provider={provider}")

    def get_history(self, session_id: str, provider: str) -> list[StoredMessage]:
        """Read the log back in insertion order."""
        return self._read(session_id, provider)
