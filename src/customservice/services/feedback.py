"""Like/dislike feedback for answers produced by a custom service."""

from __future__ import annotations

import logging

import httpx

from .settings import CustomServiceSettings

__all__ = ["FeedbackClient", "feedback_url"]

LOGGER = logging.getLogger(__name__)


def feedback_url(chat_url: str, request_id: str) -> str:
    """Derive the feedback endpoint from the chat-completion URL.

    ``https://host/v1/chat/completions`` becomes
    ``https://host/v1/requests/chat/<id>/feedback``.
    """

    base = (chat_url or "").strip().split("/chat", 1)[0]
    return f"{base}/requests/chat/{request_id}/feedback"


class FeedbackClient:
    """Best-effort feedback sender; failures are logged, never raised."""

    def __init__(self, settings: CustomServiceSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    async def like(self, request_id: str) -> bool:
        return await self._send(request_id, liked=True)

    async def dislike(self, request_id: str) -> bool:
        return await self._send(request_id, liked=False)

    async def _send(self, request_id: str, *, liked: bool) -> bool:
        url = feedback_url(self._settings.chat_completion.url, request_id)
        try:
            response = await self._client.post(url, json={"liked": liked})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Failed to send feedback for requestId: %s (%s)", request_id, exc)
            return False
        LOGGER.info("Feedback request sent for requestId: %s", request_id)
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
