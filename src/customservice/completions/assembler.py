"""Turn a substituted template into a ready-to-send request descriptor."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from ..errors import RequestBuildError
from ..services.credentials import CredentialKey, CredentialStore
from .placeholders import CUSTOM_SERVICE_API_KEY

__all__ = ["RequestDescriptor", "assemble", "resolve_headers", "serialize_body"]

LOGGER = logging.getLogger(__name__)
_STREAM_KEY = "stream"


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """Fully resolved outbound HTTP request."""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    method: str = "POST"

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def json(self) -> Any:
        """Decode the serialized body."""

        return json.loads(self.body.decode("utf-8"))


def resolve_headers(headers: Mapping[str, str], credentials: CredentialStore | None) -> Dict[str, str]:
    """Replace the API key placeholder inside header values with the stored credential.

    Without a stored credential the header values are returned verbatim,
    placeholder text included.
    """

    credential = credentials.get(CredentialKey.CUSTOM_SERVICE_API_KEY) if credentials is not None else None
    resolved: Dict[str, str] = {}
    for name, value in headers.items():
        if CUSTOM_SERVICE_API_KEY in value:
            if credential is not None:
                value = value.replace(CUSTOM_SERVICE_API_KEY, credential)
            else:
                LOGGER.warning(
                    "Header %s references %s but no credential is stored; sending it unresolved",
                    name,
                    CUSTOM_SERVICE_API_KEY,
                )
        resolved[name] = value
    return resolved


def serialize_body(body: Mapping[str, Any]) -> bytes:
    """Serialize *body* as pretty-printed UTF-8 JSON."""

    try:
        text = json.dumps(body, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise RequestBuildError(f"Request body is not JSON serializable: {exc}") from exc
    return text.encode("utf-8")


def assemble(
    url: str,
    headers: Mapping[str, str],
    body: Mapping[str, Any],
    streaming: bool,
    credentials: CredentialStore | None = None,
) -> RequestDescriptor:
    """Build a POST request descriptor from template parts.

    Non-streaming calls get a top-level ``"stream"`` entry forced to ``False``;
    a body without that key is left as is.
    """

    target_url = (url or "").strip()
    resolved_headers = resolve_headers(headers, credentials)
    transformed: Dict[str, Any] = {
        key: False if not streaming and key == _STREAM_KEY else value
        for key, value in body.items()
    }
    payload = serialize_body(transformed)
    LOGGER.debug(
        "Assembled custom service request to %s (%d header(s), %d byte body, stream=%s)",
        target_url,
        len(resolved_headers),
        len(payload),
        streaming,
    )
    return RequestDescriptor(url=target_url, headers=resolved_headers, body=payload)
