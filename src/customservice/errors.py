"""Exception hierarchy shared by the request engine and its collaborators."""

from __future__ import annotations

__all__ = [
    "CustomServiceError",
    "RequestBuildError",
    "TransportError",
    "CredentialStoreError",
]


class CustomServiceError(Exception):
    """Base class for every error raised by this package."""


class RequestBuildError(CustomServiceError):
    """Raised when a template cannot be turned into an outbound request."""


class TransportError(CustomServiceError):
    """Raised when the custom service answers with a failure."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class CredentialStoreError(CustomServiceError):
    """Raised when persisted credentials cannot be read back."""
