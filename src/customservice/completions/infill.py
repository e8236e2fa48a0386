"""Code-infill request context."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["InfillRequestDetails"]


@dataclass(frozen=True, slots=True)
class InfillRequestDetails:
    """Text surrounding the caret when an inline completion is requested."""

    prefix: str
    suffix: str = ""

    @classmethod
    def from_document(cls, text: str, offset: int, *, max_chars: int | None = None) -> InfillRequestDetails:
        """Split *text* at *offset*, optionally keeping at most *max_chars* on each side."""

        offset = max(0, min(offset, len(text)))
        prefix = text[:offset]
        suffix = text[offset:]
        if max_chars is not None and max_chars >= 0:
            prefix = prefix[len(prefix) - max_chars:] if len(prefix) > max_chars else prefix
            suffix = suffix[:max_chars]
        return cls(prefix=prefix, suffix=suffix)
