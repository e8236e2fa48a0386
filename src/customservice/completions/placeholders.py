"""Placeholder tokens and whole-value body substitution."""

from __future__ import annotations

from typing import Any, Dict, Mapping

__all__ = [
    "OPENAI_MESSAGES",
    "OPENAI_PREFIX",
    "OPENAI_SUFFIX",
    "PROMPT",
    "CUSTOM_SERVICE_API_KEY",
    "BODY_PLACEHOLDERS",
    "is_placeholder",
    "substitute",
]

# User-authored templates reference these literals; renaming any of them breaks saved templates.
OPENAI_MESSAGES = "$OPENAI_MESSAGES"
OPENAI_PREFIX = "$OPENAI_PREFIX"
OPENAI_SUFFIX = "$OPENAI_SUFFIX"
PROMPT = "$PROMPT"
CUSTOM_SERVICE_API_KEY = "$CUSTOM_SERVICE_API_KEY"

BODY_PLACEHOLDERS: tuple[str, ...] = (OPENAI_MESSAGES, OPENAI_PREFIX, OPENAI_SUFFIX, PROMPT)


def is_placeholder(value: Any, placeholder: str) -> bool:
    """Return ``True`` when *value* is a string holding exactly *placeholder*.

    Surrounding whitespace is ignored; a placeholder embedded in a longer string
    does not count.
    """

    return isinstance(value, str) and value.strip() == placeholder


def substitute(body: Mapping[str, Any], placeholder: str, value: Any) -> Dict[str, Any]:
    """Return a copy of *body* with top-level *placeholder* entries replaced by *value*.

    Key order is preserved and nested objects or arrays are passed through
    untouched. When no entry matches the result simply equals *body*.
    """

    return {
        key: value if is_placeholder(entry, placeholder) else entry
        for key, entry in body.items()
    }
