"""JSON persistence for conversation history."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from .message_model import Conversation

__all__ = ["ConversationStore"]

LOGGER = logging.getLogger(__name__)
_STORE_FILENAME = "conversations.json"
_STORE_VERSION = 1


def _default_store_path() -> Path:
    return Path.home() / ".customservice" / _STORE_FILENAME


class ConversationStore:
    """Persistence adapter for :class:`Conversation` history."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _default_store_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[Conversation]:
        payload = self._read_payload()
        raw = payload.get("conversations")
        if not isinstance(raw, list):
            return []
        conversations: List[Conversation] = []
        for item in raw:
            if isinstance(item, Mapping):
                conversations.append(Conversation.from_dict(item))
        return conversations

    def save(self, conversations: List[Conversation]) -> Path:
        payload = {
            "version": _STORE_VERSION,
            "conversations": [conversation.to_dict() for conversation in conversations],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Saved %d conversation(s) to %s", len(conversations), self._path)
        return self._path

    def get(self, conversation_id: str) -> Conversation | None:
        for conversation in self.load():
            if conversation.id == conversation_id:
                return conversation
        return None

    def upsert(self, conversation: Conversation) -> None:
        conversations = [item for item in self.load() if item.id != conversation.id]
        conversations.append(conversation)
        self.save(conversations)

    def delete(self, conversation_id: str) -> bool:
        conversations = self.load()
        remaining = [item for item in conversations if item.id != conversation_id]
        if len(remaining) == len(conversations):
            return False
        self.save(remaining)
        return True

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Conversation store %s is not valid JSON: %s", self._path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}
