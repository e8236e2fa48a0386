"""Credential storage backed by an encrypted secrets file."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Protocol

from cryptography.fernet import Fernet, InvalidToken

from ..errors import CredentialStoreError

__all__ = [
    "CredentialKey",
    "CredentialStore",
    "InMemoryCredentialStore",
    "VaultCredentialStore",
    "SecretVault",
    "SecretProvider",
    "FernetSecretProvider",
]

LOGGER = logging.getLogger(__name__)
_CONFIG_DIR = Path.home() / ".customservice"
_DEFAULT_CREDENTIALS_PATH = _CONFIG_DIR / "credentials.json"
_DEFAULT_KEY_PATH = _CONFIG_DIR / "credentials.key"
_CREDENTIALS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "CUSTOM_SERVICE_API_KEY": "CUSTOMSERVICE_API_KEY",
    "OPENAI_API_KEY": "CUSTOMSERVICE_OPENAI_API_KEY",
    "LLAMA_API_KEY": "CUSTOMSERVICE_LLAMA_API_KEY",
}


class CredentialKey(str, Enum):
    """Identifiers of the secrets the request builders may need."""

    CUSTOM_SERVICE_API_KEY = "CUSTOM_SERVICE_API_KEY"
    OPENAI_API_KEY = "OPENAI_API_KEY"
    LLAMA_API_KEY = "LLAMA_API_KEY"


class CredentialStore(Protocol):
    """Read-only view over stored secrets."""

    def get(self, key: CredentialKey) -> str | None:
        """Return the secret stored under *key*, or ``None`` when absent."""
        ...


class InMemoryCredentialStore:
    """Process-local credential store, handy for tests and embedding."""

    def __init__(self, values: Mapping[CredentialKey, str] | None = None) -> None:
        self._values: Dict[CredentialKey, str] = dict(values or {})

    def get(self, key: CredentialKey) -> str | None:
        return self._values.get(key)

    def set(self, key: CredentialKey, value: str | None) -> None:
        if value:
            self._values[key] = value
        else:
            self._values.pop(key, None)


class SecretProvider(ABC):
    """Interface for encrypting and decrypting sensitive strings."""

    name: str = "unknown"

    @abstractmethod
    def encrypt(self, secret: str) -> str:
        """Return an encoded representation of ``secret`` suitable for storage."""

    @abstractmethod
    def decrypt(self, token: str) -> str:
        """Return the plaintext representation of ``token``."""


class FernetSecretProvider(SecretProvider):
    """Fernet encryption keyed either in memory or by a key file on disk.

    A missing key file is generated on first use and written owner-readable.
    """

    name = "fernet"

    def __init__(self, key_path: Path | None = None, *, key: bytes | None = None) -> None:
        self._key_path = key_path or _DEFAULT_KEY_PATH
        self._fernet: Fernet | None = Fernet(key) if key else None

    def encrypt(self, secret: str) -> str:
        return self._cipher().encrypt(secret.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        return self._cipher().decrypt(token.encode("ascii")).decode("utf-8")

    def _cipher(self) -> Fernet:
        if self._fernet is None:
            if self._key_path.exists():
                key = self._key_path.read_bytes().strip()
            else:
                key = Fernet.generate_key()
                _write_private(self._key_path, key)
                LOGGER.info("Generated credential key at %s", self._key_path)
            self._fernet = Fernet(key)
        return self._fernet


class SecretVault:
    """Encrypts secrets and tags each token with the provider that produced it."""

    def __init__(self, *, key_path: Path | None = None, provider: SecretProvider | None = None) -> None:
        self._provider = provider or FernetSecretProvider(key_path)

    @property
    def strategy(self) -> str:
        return self._provider.name

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        return f"{self._provider.name}:{self._provider.encrypt(secret)}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        prefix, payload = _split_token(token)
        if prefix is not None and prefix != self._provider.name:
            raise CredentialStoreError(f"Secret was encrypted with unknown backend '{prefix}'")
        try:
            return self._provider.decrypt(payload)
        except InvalidToken as exc:
            raise CredentialStoreError("Invalid Fernet token") from exc


class VaultCredentialStore:
    """Credential store persisting encrypted secrets as JSON.

    Secrets are decrypted lazily on :meth:`get`; ``CUSTOMSERVICE_API_KEY`` and
    its siblings in the environment take precedence over the file.
    """

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_CREDENTIALS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def get(self, key: CredentialKey) -> str | None:
        env_value = os.environ.get(_ENV_OVERRIDES.get(key.value, ""))
        if env_value:
            return env_value
        token = self._read_tokens().get(key.value)
        if not token:
            return None
        return self._vault.decrypt(token) or None

    def set(self, key: CredentialKey, value: str | None) -> None:
        tokens = self._read_tokens()
        if value:
            tokens[key.value] = self._vault.encrypt(value)
            LOGGER.debug("Stored credential %s via %s backend", key.value, self._vault.strategy)
        elif tokens.pop(key.value, None) is not None:
            LOGGER.debug("Removed credential %s", key.value)
        self._write_tokens(tokens)

    def delete(self, key: CredentialKey) -> None:
        self.set(key, None)

    def keys(self) -> list[CredentialKey]:
        known = {item.value: item for item in CredentialKey}
        return [known[name] for name in self._read_tokens() if name in known]

    def _read_tokens(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Credentials file %s is not valid JSON: %s", self._path, exc)
            return {}
        secrets = payload.get("secrets") if isinstance(payload, Mapping) else None
        if not isinstance(secrets, Mapping):
            return {}
        return {str(name): str(token) for name, token in secrets.items() if token}

    def _write_tokens(self, tokens: Mapping[str, str]) -> None:
        payload = {
            "version": _CREDENTIALS_VERSION,
            "secret_backend": self._vault.strategy,
            "secrets": dict(tokens),
        }
        _write_private(self._path, json.dumps(payload, indent=2, sort_keys=True).encode("utf-8"))


def _split_token(token: str) -> tuple[str | None, str]:
    if ":" not in token:
        return None, token
    prefix, payload = token.split(":", 1)
    return (prefix or None), payload


def _write_private(path: Path, data: bytes) -> None:
    """Atomically replace *path* with *data*, readable by the owner only."""

    path.parent.mkdir(parents=True, exist_ok=True)
    # Sibling temp name per target; the key and secrets files share a stem.
    tmp_path = path.with_name(f"{path.name}.tmp")
    tmp_path.write_bytes(data)
    if os.name != "nt":  # pragma: no cover - depends on OS
        os.chmod(tmp_path, 0o600)
    tmp_path.replace(path)
