"""Request template data model."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping

__all__ = ["RequestTemplate", "TemplateKind"]


class TemplateKind(str, Enum):
    """Logical request kinds a custom service answers."""

    FREE_CHAT = "free_chat"
    INFILL = "infill"
    CHAT_COMPLETION = "chat_completion"


@dataclass(frozen=True, slots=True)
class RequestTemplate:
    """User-authored request shape: endpoint, headers and JSON body.

    The template owns private copies of its inputs and only exposes read-only
    views, so a snapshot handed to a builder cannot change underneath it.
    """

    url: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", str(self.url or ""))
        headers = {str(key): str(value) for key, value in dict(self.headers or {}).items()}
        object.__setattr__(self, "headers", MappingProxyType(headers))
        object.__setattr__(self, "body", MappingProxyType(copy.deepcopy(dict(self.body or {}))))

    def body_copy(self) -> Dict[str, Any]:
        """Return a deep, mutable copy of the body."""

        return copy.deepcopy(dict(self.body))

    def with_url(self, url: str) -> RequestTemplate:
        return RequestTemplate(url=url, headers=self.headers, body=self.body)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the template for persistence."""

        return {
            "url": self.url,
            "headers": dict(self.headers),
            "body": self.body_copy(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> RequestTemplate:
        if not isinstance(payload, Mapping):
            return cls()
        headers = payload.get("headers")
        body = payload.get("body")
        return cls(
            url=str(payload.get("url") or ""),
            headers=headers if isinstance(headers, Mapping) else {},
            body=body if isinstance(body, Mapping) else {},
        )
