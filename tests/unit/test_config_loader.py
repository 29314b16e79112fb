"""Unit tests for sync manifest loading and credential precedence."""

from __future__ import annotations

from pathlib import Path

import pytest

from offshape.config import (
    ConfigLoader,
    Credentials,
    RuntimeConfigSources,
    SyncedPart,
    load_environment,
    resolve_credentials,
)
from offshape.errors import ConfigurationError
from offshape.models.datatypes import ExportFileFormat

_TOML_MANIFEST = """
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
""".lstrip()


def test_config_loader_from_toml_resolves_paths_against_manifest_dir(tmp_path: Path) -> None:
    """TOML manifests should load studios in order with manifest-relative paths."""

    config_path = tmp_path / "offshape.toml"
    config_path.write_text(_TOML_MANIFEST, encoding="utf-8")

    config = ConfigLoader.from_file(config_path)

    assert config.document.id == "d1"
    assert config.document.workspace_id == "w1"
    assert [studio.id for studio in config.part_studios] == ["e1", "e2"]
    assert config.part_studios[0].display_name == "Brackets"
    assert config.part_studios[0].synced_parts == (
        SyncedPart(id="JHD", basename="bracket"),
        SyncedPart(id="JHG", basename="lid_hinge_v2"),
    )
    assert config.part_studios[1].display_name == "e2"
    assert config.part_studios[1].synced_parts == ()
    assert config.three_mf_path == tmp_path.resolve() / "cad" / "3mf"
    assert config.step_path is None
    assert config.export_formats() == [ExportFileFormat.THREE_MF, ExportFileFormat.STL]
    assert config.output_dirs() == {
        ExportFileFormat.THREE_MF: tmp_path.resolve() / "cad" / "3mf",
        ExportFileFormat.STL: tmp_path.resolve() / "cad" / "stl",
    }


def test_config_loader_keeps_absolute_paths(tmp_path: Path) -> None:
    """Absolute output paths should not be re-rooted under the manifest dir."""

    absolute = tmp_path / "elsewhere" / "step"
    config = ConfigLoader.from_mapping(
        {
            "step_path": str(absolute),
            "document": {"id": "d1", "workspace_id": "w1"},
            "part_studio": [{"id": "e1"}],
        },
        base_dir=tmp_path / "project",
    )

    assert config.step_path == absolute


def test_config_loader_from_yaml_matches_toml_schema(tmp_path: Path) -> None:
    """YAML manifests should accept the same keys as TOML ones."""

    config_path = tmp_path / "offshape.yml"
    config_path.write_text(
        """
step_path: out/step
document:
  id: " d1 "
  workspace_id: w1
part_studio:
  - id: e1
    synced_parts:
      - id: JHD
        basename: bracket
""".strip(),
        encoding="utf-8",
    )

    config = ConfigLoader.from_file(config_path)

    assert config.document.id == "d1"
    assert config.step_path == tmp_path.resolve() / "out" / "step"
    assert config.export_formats() == [ExportFileFormat.STEP]


def test_config_loader_rejects_missing_and_unknown_keys(tmp_path: Path) -> None:
    """Loader should fail clearly on missing required or unknown top-level keys."""

    with pytest.raises(ValueError, match=r"missing required key\(s\): part_studio"):
        ConfigLoader.from_mapping(
            {"document": {"id": "d1", "workspace_id": "w1"}},
            base_dir=tmp_path,
        )

    with pytest.raises(ValueError, match=r"unsupported key\(s\): obj_path"):
        ConfigLoader.from_mapping(
            {
                "obj_path": "out",
                "document": {"id": "d1", "workspace_id": "w1"},
                "part_studio": [],
            },
            base_dir=tmp_path,
        )


def test_config_loader_rejects_malformed_entries(tmp_path: Path) -> None:
    """Nested tables should be validated with indexed labels."""

    with pytest.raises(ValueError, match=r"`document` requires non-empty `workspace_id`"):
        ConfigLoader.from_mapping(
            {"document": {"id": "d1"}, "part_studio": []},
            base_dir=tmp_path,
        )

    with pytest.raises(ValueError, match=r"`synced_parts\[0\]` requires non-empty `basename`"):
        ConfigLoader.from_mapping(
            {
                "document": {"id": "d1", "workspace_id": "w1"},
                "part_studio": [{"id": "e1", "synced_parts": [{"id": "JHD"}]}],
            },
            base_dir=tmp_path,
        )


def test_config_loader_reports_invalid_toml(tmp_path: Path) -> None:
    """TOML syntax errors should surface as `ValueError`."""

    config_path = tmp_path / "offshape.toml"
    config_path.write_text("[document\nid = 1\n", encoding="utf-8")

    with pytest.raises(ValueError, match="is not valid TOML"):
        ConfigLoader.from_file(config_path)


def test_resolve_credentials_precedence_cli_secure_env() -> None:
    """Credential keys should resolve independently with cli > secure > env."""

    credentials = resolve_credentials(
        RuntimeConfigSources(
            cli={"access_key": "cli-access"},
            secure={"access_key": "secure-access", "secret_key": "secure-secret"},
            env={"ONSHAPE_ACCESS_KEY": "env-access", "ONSHAPE_SECRET_KEY": "env-secret"},
        )
    )

    assert credentials == Credentials(access_key="cli-access", secret_key="secure-secret")
    assert "secure-secret" not in repr(credentials)


def test_resolve_credentials_falls_back_to_env_and_ignores_blanks() -> None:
    """Blank higher-precedence values should not shadow environment values."""

    credentials = resolve_credentials(
        RuntimeConfigSources(
            cli={"access_key": "  "},
            env={"ONSHAPE_ACCESS_KEY": "env-access", "ONSHAPE_SECRET_KEY": " env-secret "},
        )
    )

    assert credentials.access_key == "env-access"
    assert credentials.secret_key == "env-secret"


def test_resolve_credentials_reports_every_missing_key() -> None:
    """Missing keys should be named in one configuration error with a hint."""

    with pytest.raises(ConfigurationError) as excinfo:
        resolve_credentials(RuntimeConfigSources(env={"ONSHAPE_ACCESS_KEY": "a"}))

    assert excinfo.value.stage == "config"
    assert "ONSHAPE_SECRET_KEY" in excinfo.value.detail
    assert "ONSHAPE_ACCESS_KEY" not in excinfo.value.detail
    assert excinfo.value.hint is not None


def test_load_environment_reads_dotenv_under_process_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """`.env` values should load, with the process environment taking precedence."""

    env_file = tmp_path / ".env"
    env_file.write_text(
        "ONSHAPE_ACCESS_KEY=file-access\nONSHAPE_SECRET_KEY=file-secret\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ONSHAPE_ACCESS_KEY", "process-access")
    monkeypatch.delenv("ONSHAPE_SECRET_KEY", raising=False)

    values = load_environment(env_file)

    assert values["ONSHAPE_ACCESS_KEY"] == "process-access"
    assert values["ONSHAPE_SECRET_KEY"] == "file-secret"
