"""Tests for encrypted credential storage."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from customservice.errors import CredentialStoreError
from customservice.services.credentials import (
    CredentialKey,
    FernetSecretProvider,
    InMemoryCredentialStore,
    SecretVault,
    VaultCredentialStore,
)


def _store(tmp_path: Path) -> VaultCredentialStore:
    return VaultCredentialStore(tmp_path / "credentials.json", vault=SecretVault(key_path=tmp_path / "key"))


def test_get_returns_none_when_file_missing(tmp_path: Path) -> None:
    assert _store(tmp_path).get(CredentialKey.CUSTOM_SERVICE_API_KEY) is None


def test_set_and_get_roundtrip(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "super-secret")

    assert _store(tmp_path).get(CredentialKey.CUSTOM_SERVICE_API_KEY) == "super-secret"
    assert store.keys() == [CredentialKey.CUSTOM_SERVICE_API_KEY]


def test_secrets_are_not_written_in_plaintext(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "super-secret")

    raw = store.path.read_text(encoding="utf-8")
    assert "super-secret" not in raw
    payload = json.loads(raw)
    assert payload["secrets"]["CUSTOM_SERVICE_API_KEY"].startswith("fernet:")


def test_setting_empty_value_deletes_credential(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "value")

    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "")

    assert store.get(CredentialKey.CUSTOM_SERVICE_API_KEY) is None
    assert store.keys() == []


def test_delete_leaves_other_keys(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "a")
    store.set(CredentialKey.OPENAI_API_KEY, "b")

    store.delete(CredentialKey.CUSTOM_SERVICE_API_KEY)

    assert store.get(CredentialKey.OPENAI_API_KEY) == "b"
    assert store.get(CredentialKey.CUSTOM_SERVICE_API_KEY) is None


def test_environment_overrides_stored_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "from-file")
    monkeypatch.setenv("CUSTOMSERVICE_API_KEY", "from-env")

    assert store.get(CredentialKey.CUSTOM_SERVICE_API_KEY) == "from-env"


def test_corrupt_file_is_treated_as_empty(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.get(CredentialKey.CUSTOM_SERVICE_API_KEY) is None


def test_token_from_other_key_cannot_be_decrypted(tmp_path: Path) -> None:
    token = SecretVault(key_path=tmp_path / "one.key").encrypt("secret")
    other = SecretVault(key_path=tmp_path / "two.key")

    with pytest.raises(CredentialStoreError):
        other.decrypt(token)


def test_unknown_backend_prefix_is_rejected(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "key")

    with pytest.raises(CredentialStoreError):
        vault.decrypt("dpapi:abc")


def test_in_memory_store() -> None:
    store = InMemoryCredentialStore()
    store.set(CredentialKey.LLAMA_API_KEY, "x")

    assert store.get(CredentialKey.LLAMA_API_KEY) == "x"
    store.set(CredentialKey.LLAMA_API_KEY, None)
    assert store.get(CredentialKey.LLAMA_API_KEY) is None


def test_key_and_secrets_use_separate_temp_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    replaced: list[str] = []
    original_replace = Path.replace

    def _recording_replace(self: Path, target: Path) -> Path:
        replaced.append(self.name)
        return original_replace(self, target)

    monkeypatch.setattr(Path, "replace", _recording_replace)
    store = VaultCredentialStore(tmp_path / "credentials.json")

    store.set(CredentialKey.CUSTOM_SERVICE_API_KEY, "super-secret")

    assert replaced == ["credentials.key.tmp", "credentials.json.tmp"]
    assert sorted(item.name for item in tmp_path.iterdir()) == ["credentials.json", "credentials.key"]
    assert store.get(CredentialKey.CUSTOM_SERVICE_API_KEY) == "super-secret"


def test_fernet_provider_accepts_in_memory_key(tmp_path: Path) -> None:
    key = Fernet.generate_key()
    provider = FernetSecretProvider(tmp_path / "unused.key", key=key)

    token = provider.encrypt("value")

    assert FernetSecretProvider(key=key).decrypt(token) == "value"
    assert not (tmp_path / "unused.key").exists()
