"""Chat message and conversation data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, cast

from openai.types.chat import ChatCompletionMessageParam

__all__ = ["ChatMessage", "ChatRole", "Conversation", "Message"]

ChatRole = Literal["system", "user", "assistant"]


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Role-tagged message in the OpenAI chat-completion shape."""

    role: ChatRole
    content: str

    def to_param(self) -> ChatCompletionMessageParam:
        return cast(ChatCompletionMessageParam, {"role": self.role, "content": self.content})

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> ChatMessage:
        role = str(payload.get("role") or "user")
        if role not in ("system", "user", "assistant"):
            raise ValueError(f"Unsupported chat role '{role}'")
        return cls(role=cast(ChatRole, role), content=str(payload.get("content") or ""))


@dataclass(slots=True)
class Message:
    """A single prompt/response exchange."""

    prompt: str
    response: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    referenced_file_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "response": self.response,
            "referenced_file_paths": list(self.referenced_file_paths),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Message:
        paths = payload.get("referenced_file_paths")
        return cls(
            prompt=str(payload.get("prompt") or ""),
            response=payload.get("response"),
            id=str(payload.get("id") or uuid.uuid4()),
            referenced_file_paths=[str(item) for item in paths] if isinstance(paths, list) else [],
        )


@dataclass(slots=True)
class Conversation:
    """Ordered chat history with a custom service."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    messages: List[Message] = field(default_factory=list)
    model: Optional[str] = None
    created_on: datetime = field(default_factory=_utcnow)
    updated_on: datetime = field(default_factory=_utcnow)

    def add_message(self, message: Message) -> None:
        self.messages.append(message)
        self.updated_on = _utcnow()

    def to_plain_turns(self, prompt: str) -> List[str]:
        """Flatten the history into alternating prompt/response strings ending with *prompt*.

        Exchanges without a response contribute only their prompt.
        """

        turns: List[str] = []
        for message in self.messages:
            turns.append(message.prompt)
            if message.response:
                turns.append(message.response)
        turns.append(prompt)
        return turns

    def to_chat_messages(self, prompt: str, *, system_prompt: str | None = None) -> List[ChatMessage]:
        messages: List[ChatMessage] = []
        if system_prompt:
            messages.append(ChatMessage("system", system_prompt))
        for message in self.messages:
            messages.append(ChatMessage("user", message.prompt))
            if message.response:
                messages.append(ChatMessage("assistant", message.response))
        messages.append(ChatMessage("user", prompt))
        return messages

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "created_on": self.created_on.isoformat(),
            "updated_on": self.updated_on.isoformat(),
            "messages": [message.to_dict() for message in self.messages],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Conversation:
        raw_messages = payload.get("messages")
        messages = [
            Message.from_dict(item) for item in raw_messages or [] if isinstance(item, Mapping)
        ]
        return cls(
            id=str(payload.get("id") or uuid.uuid4()),
            messages=messages,
            model=payload.get("model"),
            created_on=_parse_timestamp(payload.get("created_on")),
            updated_on=_parse_timestamp(payload.get("updated_on")),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return _utcnow()
