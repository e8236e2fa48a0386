"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer overrides (API keys, URLs, timeouts) out of the tests."""

    for name in list(os.environ):
        if name.startswith("CUSTOMSERVICE_"):
            monkeypatch.delenv(name, raising=False)
