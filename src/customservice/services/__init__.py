"""Collaborators around the request engine (credentials, settings, transport)."""

from .credentials import CredentialKey, CredentialStore, InMemoryCredentialStore, VaultCredentialStore

__all__ = [
    "CredentialKey",
    "CredentialStore",
    "InMemoryCredentialStore",
    "VaultCredentialStore",
]
