"""Secure credential storage helpers for the offshape CLI.

Responsibilities:
- Persist Onshape API keys in an OS-backed secure credential store.
- Provide deterministic read/write/delete operations for the key pair.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.backends import fail
from keyring.errors import PasswordDeleteError


_DEFAULT_SERVICE_NAME = "offshape"
_ACCOUNT_NAMES = {"access_key": "onshape_access_key", "secret_key": "onshape_secret_key"}


class CredentialStore:
    """Interface for secure Onshape credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_credentials(self) -> dict[str, str]:
        """Load stored `access_key`/`secret_key` values that are present."""

        raise NotImplementedError

    def set_credentials(self, access_key: str, secret_key: str) -> None:
        """Persist both keys in secure storage."""

        raise NotImplementedError

    def clear_credentials(self) -> bool:
        """Delete stored keys and return whether any existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME

    def _load_keyring_module(self):
        """Return the `keyring` module; replaced in tests."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` unless keyring resolved to its failing null backend."""

        backend = self._load_keyring_module().get_keyring()
        return not isinstance(backend, fail.Keyring)

    def get_credentials(self) -> dict[str, str]:
        """Get normalized stored keys, omitting missing or blank ones."""

        if not self.is_available():
            return {}
        keyring_module = self._load_keyring_module()
        values: dict[str, str] = {}
        for key, account_name in _ACCOUNT_NAMES.items():
            value = keyring_module.get_password(self.service_name, account_name)
            if value is None or not value.strip():
                continue
            values[key] = value.strip()
        return values

    def set_credentials(self, access_key: str, secret_key: str) -> None:
        """Persist a normalized key pair or raise when keyring is unusable."""

        if not self.is_available():
            raise RuntimeError(
                "Secure credential storage is unavailable because no keyring backend "
                "is configured."
            )

        values = {"access_key": access_key.strip(), "secret_key": secret_key.strip()}
        if not all(values.values()):
            raise ValueError("Access key and secret key must be non-empty strings.")
        keyring_module = self._load_keyring_module()
        for key, account_name in _ACCOUNT_NAMES.items():
            keyring_module.set_password(self.service_name, account_name, values[key])

    def clear_credentials(self) -> bool:
        """Remove stored keys from keyring and report if any were present."""

        existing = self.get_credentials()
        if not existing:
            return False

        keyring_module = self._load_keyring_module()
        for key in existing:
            try:
                keyring_module.delete_password(self.service_name, _ACCOUNT_NAMES[key])
            except PasswordDeleteError:
                continue
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
