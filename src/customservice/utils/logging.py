"""Logging setup for custom-service tooling.

Every handler installed here carries a :class:`SecretRedactionFilter`, so an
``Authorization`` value that slips into a log call never reaches disk.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
from pathlib import Path

__all__ = ["SecretRedactionFilter", "get_log_path", "setup_logging"]

LOG_DIR_ENV = "CUSTOMSERVICE_LOG_DIR"
LOG_FILENAME = "customservice.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DEFAULT_LOG_DIR = Path.home() / ".customservice" / "logs"
# httpx and httpcore echo request headers at DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_SECRET_PATTERN = re.compile(r"(?i)\b(bearer\s+|api[-_]?key[=:]\s*)([A-Za-z0-9._\-]{8,})")

_state: dict[str, Path | None] = {"log_path": None}


class SecretRedactionFilter(logging.Filter):
    """Masks bearer tokens and ``api-key=...`` values in rendered messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SECRET_PATTERN.sub(_mask, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route root logging to ``customservice.log`` and, optionally, stderr.

    Repeated calls are no-ops returning the active log path unless *force* is
    set. ``CUSTOMSERVICE_LOG_DIR`` overrides the default directory when
    *log_dir* is not given.
    """

    current = _state["log_path"]
    if current is not None and not force:
        return current

    directory = Path(log_dir or os.environ.get(LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILENAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    redaction = SecretRedactionFilter()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(redaction)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _state["log_path"] = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _state["log_path"]


def _mask(match: re.Match[str]) -> str:
    return f"{match.group(1)}{match.group(2)[:4]}***"
