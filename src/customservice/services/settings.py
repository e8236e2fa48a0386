"""Custom-service settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..completions.placeholders import (
    CUSTOM_SERVICE_API_KEY,
    OPENAI_MESSAGES,
    OPENAI_PREFIX,
    OPENAI_SUFFIX,
)
from ..completions.templates import RequestTemplate, TemplateKind

__all__ = [
    "CustomServiceSettings",
    "SettingsStore",
    "default_chat_completion_template",
    "default_completion_template",
    "redact_secret",
    "redact_headers",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".customservice"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_TEMPLATE_FIELDS = ("completion", "chat_completion")
_ENV_URL_OVERRIDES: Mapping[str, str] = {
    "CUSTOMSERVICE_CHAT_URL": "chat_completion",
    "CUSTOMSERVICE_COMPLETION_URL": "completion",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "CUSTOMSERVICE_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "CUSTOMSERVICE_REQUEST_TIMEOUT": "request_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "CUSTOMSERVICE_MAX_RETRIES": "max_retries",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_DEFAULT_HEADERS: Mapping[str, str] = {
    "Authorization": f"Bearer {CUSTOM_SERVICE_API_KEY}",
    "Content-Type": "application/json",
}


def default_chat_completion_template() -> RequestTemplate:
    return RequestTemplate(
        url="https://api.openai.com/v1/chat/completions",
        headers=_DEFAULT_HEADERS,
        body={
            "stream": True,
            "model": "gpt-4o-mini",
            "messages": OPENAI_MESSAGES,
            "temperature": 0.1,
            "max_tokens": 1000,
        },
    )


def default_completion_template() -> RequestTemplate:
    return RequestTemplate(
        url="https://api.openai.com/v1/completions",
        headers=_DEFAULT_HEADERS,
        body={
            "stream": True,
            "model": "gpt-3.5-turbo-instruct",
            "prompt": OPENAI_PREFIX,
            "suffix": OPENAI_SUFFIX,
            "temperature": 0.2,
            "max_tokens": 24,
        },
    )


@dataclass(slots=True)
class CustomServiceSettings:
    """User-configured custom service: request templates plus transport knobs."""

    name: str = "Custom OpenAI"
    completion: RequestTemplate = field(default_factory=default_completion_template)
    chat_completion: RequestTemplate = field(default_factory=default_chat_completion_template)
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    debug_logging: bool = False

    def template_for(self, kind: TemplateKind) -> RequestTemplate:
        """Return the template snapshot serving *kind* requests.

        Free-form chat and structured chat both use the chat-completion template.
        """

        if kind is TemplateKind.INFILL:
            return self.completion
        return self.chat_completion

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "completion": self.completion.to_dict(),
            "chat_completion": self.chat_completion.to_dict(),
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "retry_min_seconds": self.retry_min_seconds,
            "retry_max_seconds": self.retry_max_seconds,
            "debug_logging": self.debug_logging,
        }


class SettingsStore:
    """Persistence adapter for :class:`CustomServiceSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> CustomServiceSettings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = CustomServiceSettings()
        if payload:
            data = _filter_fields(payload)
            for name in _TEMPLATE_FIELDS:
                if name in data:
                    data[name] = RequestTemplate.from_dict(data[name])
            try:
                settings = CustomServiceSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = CustomServiceSettings()
            if payload.get("version") != _SETTINGS_VERSION:
                LOGGER.info("Settings file %s has version %s; rewriting", self._path, payload.get("version"))
                self.save(settings)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: CustomServiceSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = settings.to_dict()
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug(
            "Settings saved to %s: chat=%s completion=%s",
            self._path,
            settings.chat_completion.url.strip(),
            settings.completion.url.strip(),
        )
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not hold a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: CustomServiceSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> CustomServiceSettings:
        allowed = {item.name for item in fields(CustomServiceSettings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            if key in _TEMPLATE_FIELDS and isinstance(value, Mapping):
                value = RequestTemplate.from_dict(value)
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: CustomServiceSettings) -> CustomServiceSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_URL_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = getattr(settings, field_name).with_url(value)
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(CustomServiceSettings)}
    return {key: value for key, value in payload.items() if key in allowed}


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Mask header values for display, keeping unresolved placeholders readable."""

    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if CUSTOM_SERVICE_API_KEY in value or not value:
            redacted[name] = value
        elif name.lower() in {"content-type", "accept"}:
            redacted[name] = value
        else:
            redacted[name] = redact_secret(value)
    return redacted
