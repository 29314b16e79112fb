"""Integration-test fixtures wiring the CLI to an in-process Onshape double."""

from __future__ import annotations

from pathlib import Path

import pytest

from offshape.onshape.client import OnshapeClient
from tests.fake_onshape import FakeOnshapeService, instant_rate_limiter, part_listing


class InMemoryCredentialStore:
    """Credential store stand-in so tests never touch the OS keyring."""

    def __init__(self) -> None:
        """Initialize empty storage."""

        self.values: dict[str, str] = {}

    def is_available(self) -> bool:
        return True

    def get_credentials(self) -> dict[str, str]:
        return dict(self.values)

    def set_credentials(self, access_key: str, secret_key: str) -> None:
        self.values = {"access_key": access_key, "secret_key": secret_key}

    def clear_credentials(self) -> bool:
        existed = bool(self.values)
        self.values = {}
        return existed


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace the keyring-backed store used by CLI commands."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("offshape.cli.create_credential_store", lambda: store)
    return store


@pytest.fixture
def fake_service() -> FakeOnshapeService:
    """Two part studios with two parts each."""

    return FakeOnshapeService(
        parts_by_studio={
            "e1": part_listing(("Bracket", "JHD"), ("Lid Hinge v2", "JHG"), element_id="e1"),
            "e2": part_listing(("Base Plate", "JKD"), ("Knob", "JKG"), element_id="e2"),
        }
    )


@pytest.fixture
def fake_client(fake_service: FakeOnshapeService) -> OnshapeClient:
    """Real client bound to the fake service with a non-sleeping limiter."""

    return OnshapeClient(
        "ACCESS",
        "secret",
        session=fake_service,  # type: ignore[arg-type]
        rate_limiter=instant_rate_limiter(),
    )


@pytest.fixture
def patched_cli_client(monkeypatch: pytest.MonkeyPatch, fake_client: OnshapeClient) -> OnshapeClient:
    """Make CLI commands use `fake_client` instead of building a live one."""

    monkeypatch.setattr("offshape.cli._build_client", lambda options: fake_client)
    return fake_client


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    """Write an `offshape.toml` exporting both studios as 3MF and STL."""

    path = tmp_path / "offshape.toml"
    path.write_text(
        """
3mf_path = "cad/3mf"
stl_path = "cad/stl"

[document]
id = "d1"
workspace_id = "w1"

[[part_studio]]
id = "e1"
display_name = "Brackets"
synced_parts = [
    { id = "JHD", basename = "bracket" },
    { id = "JHG", basename = "lid_hinge_v2" },
]

[[part_studio]]
id = "e2"
display_name = "Bases"
""".lstrip(),
        encoding="utf-8",
    )
    return path
