"""Render user questions together with referenced file contents."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable

__all__ = [
    "DEFAULT_PROMPT_TEMPLATE",
    "DEFAULT_REPEATABLE_CONTEXT",
    "ReferencedFile",
    "build_prompt_with_context",
]

DEFAULT_PROMPT_TEMPLATE = (
    "Use the following context to answer question at the end:\n\n"
    "{REPEATABLE_CONTEXT}\n\n"
    "Question: {QUESTION}"
)
DEFAULT_REPEATABLE_CONTEXT = "File Path: {FILE_PATH}\nFile Content:\n{FILE_CONTENT}"


@dataclass(frozen=True, slots=True)
class ReferencedFile:
    """A file the user attached to a chat question."""

    path: str
    content: str

    @property
    def extension(self) -> str:
        return PurePath(self.path).suffix.lstrip(".")


def build_prompt_with_context(
    referenced_files: Iterable[ReferencedFile],
    question: str,
    *,
    template: str = DEFAULT_PROMPT_TEMPLATE,
    repeatable_context: str = DEFAULT_REPEATABLE_CONTEXT,
) -> str:
    """Expand *template* with one fenced block per file followed by *question*."""

    blocks = [
        repeatable_context
        .replace("{FILE_PATH}", item.path)
        .replace("{FILE_CONTENT}", f"```{item.extension}\n{item.content.strip()}\n```")
        for item in referenced_files
    ]
    return template.replace("{REPEATABLE_CONTEXT}", "\n\n".join(blocks)).replace("{QUESTION}", question)
