"""CLI credential resolution helpers.

This module isolates credential source assembly and secure key persistence
from the command wiring layer.
"""

from __future__ import annotations

from typing import Callable, Protocol

from .config import RuntimeConfigSources, load_environment
from .credentials import create_credential_store
from .parsing import normalize_optional_string


class CredentialStoreProtocol(Protocol):
    """Protocol for secure credential store reads used by CLI runtime resolution."""

    def get_credentials(self) -> dict[str, str]:
        """Return stored key values, if available."""


def resolve_runtime_sources(
    access_key: str | None,
    secret_key: str | None,
    credential_store_factory: Callable[[], CredentialStoreProtocol] = create_credential_store,
    env: dict[str, str] | None = None,
) -> RuntimeConfigSources:
    """Assemble CLI, keyring, and environment sources for credential resolution."""

    runtime_cli_values: dict[str, str] = {}
    for key, value in (("access_key", access_key), ("secret_key", secret_key)):
        normalized = normalize_optional_string(value)
        if normalized is not None:
            runtime_cli_values[key] = normalized

    runtime_secure_values: dict[str, str] = {}
    if len(runtime_cli_values) < 2:
        runtime_secure_values = dict(credential_store_factory().get_credentials())

    return RuntimeConfigSources(
        cli=runtime_cli_values,
        secure=runtime_secure_values,
        env=env if env is not None else load_environment(),
    )
