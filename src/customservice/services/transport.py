"""Async HTTP transport that sends assembled custom-service requests."""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, AsyncIterator, Mapping

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..completions.assembler import RequestDescriptor
from ..errors import TransportError
from .settings import CustomServiceSettings

__all__ = ["CustomServiceTransport", "extract_text_delta"]

LOGGER = logging.getLogger(__name__)
_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"
_RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504})
_DONE = object()


class _RetryableStatusError(TransportError):
    """HTTP failure worth another attempt."""


class CustomServiceTransport:
    """Sends :class:`RequestDescriptor` objects with ``httpx``.

    Non-streaming calls are retried on timeouts, connection failures and
    transient status codes. Streams are never retried because the caller may
    already have consumed part of the answer.
    """

    def __init__(
        self,
        settings: CustomServiceSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or CustomServiceSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.request_timeout)

    async def send(self, descriptor: RequestDescriptor) -> Any:
        """Send a non-streaming request and return the decoded response body."""

        async for attempt in self._retrying():
            with attempt:
                response = await self._client.send(_to_httpx_request(descriptor))
                try:
                    await response.aread()
                finally:
                    await response.aclose()
                _raise_for_status(response)
                break
        LOGGER.debug("Custom service at %s answered with HTTP %s", descriptor.url, response.status_code)
        try:
            return response.json()
        except ValueError:
            return response.text

    async def stream(self, descriptor: RequestDescriptor) -> AsyncIterator[Mapping[str, Any]]:
        """Yield decoded server-sent event chunks until the service signals completion."""

        response = await self._client.send(_to_httpx_request(descriptor), stream=True)
        try:
            if response.is_error:
                await response.aread()
                _raise_for_status(response)
            async for line in response.aiter_lines():
                chunk = _parse_event_line(line)
                if chunk is _DONE:
                    break
                if chunk is not None:
                    yield chunk
        finally:
            await response.aclose()

    async def stream_text(self, descriptor: RequestDescriptor) -> AsyncIterator[str]:
        """Yield only the text deltas of a streamed completion."""

        async for chunk in self.stream(descriptor):
            delta = extract_text_delta(chunk)
            if delta:
                yield delta

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(_is_transient),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this transport created it."""

        if not self._owns_client:
            return
        result = self._client.aclose()
        if inspect.isawaitable(result):
            await result


def _to_httpx_request(descriptor: RequestDescriptor) -> httpx.Request:
    return httpx.Request(
        descriptor.method,
        descriptor.url,
        headers=list(descriptor.headers.items()),
        content=descriptor.body,
    )


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_error:
        return
    error_type = _RetryableStatusError if response.status_code in _RETRYABLE_STATUS else TransportError
    raise error_type(
        f"Custom service responded with HTTP {response.status_code}",
        status_code=response.status_code,
        body=response.text,
    )


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (_RetryableStatusError, httpx.TimeoutException, httpx.TransportError))


def _parse_event_line(line: str) -> Any:
    stripped = line.strip()
    if not stripped or stripped.startswith(":"):
        return None
    if not stripped.startswith(_SSE_DATA_PREFIX):
        return None
    data = stripped[len(_SSE_DATA_PREFIX):].strip()
    if data == _SSE_DONE:
        return _DONE
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        LOGGER.debug("Skipping undecodable event payload: %s", data[:200])
        return None
    return payload if isinstance(payload, Mapping) else None


def extract_text_delta(chunk: Mapping[str, Any]) -> str:
    """Return the text carried by a chat or text completion chunk."""

    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, Mapping):
        return ""
    for container_key in ("delta", "message"):
        container = choice.get(container_key)
        if isinstance(container, Mapping) and isinstance(container.get("content"), str):
            return container["content"]
    text = choice.get("text")
    return text if isinstance(text, str) else ""
