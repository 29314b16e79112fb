"""Configuration model and loaders for offshape.

Responsibilities:
- Define the sync manifest (`offshape.toml`) as typed dataclasses.
- Load the manifest from TOML or YAML and resolve output paths relative to
  the manifest's directory.
- Resolve Onshape credentials with deterministic source precedence.

Key types:
- `SyncConfig`: document, part studios, and per-format output directories.
- `Credentials`: resolved access/secret key pair.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `SyncConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any, Mapping

from dotenv import dotenv_values, find_dotenv
import yaml

from .errors import ConfigurationError
from .models.datatypes import ExportFileFormat
from .parsing import normalize_optional_string


DEFAULT_CONFIG_FILENAME = "offshape.toml"
ACCESS_KEY_ENV = "ONSHAPE_ACCESS_KEY"
SECRET_KEY_ENV = "ONSHAPE_SECRET_KEY"

_FORMAT_PATH_KEYS = {
    ExportFileFormat.THREE_MF: "3mf_path",
    ExportFileFormat.STEP: "step_path",
    ExportFileFormat.STL: "stl_path",
}


@dataclass(frozen=True, slots=True)
class SyncedPart:
    """A part pinned in the manifest with its output basename."""

    id: str
    basename: str


@dataclass(frozen=True, slots=True)
class SyncedPartStudio:
    """A part studio tab to export.

    Attributes:
        id: Element id of the part studio.
        display_name: Human-readable label used in listings.
        synced_parts: Parts to export; empty means every part in the studio.
    """

    id: str
    display_name: str
    synced_parts: tuple[SyncedPart, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class SyncedDocument:
    """Onshape document and workspace the manifest points at."""

    id: str
    workspace_id: str


@dataclass(slots=True)
class SyncConfig:
    """Sync manifest for one Onshape document.

    Attributes:
        document: Document and workspace identifiers.
        part_studios: Part studios to export, in manifest order.
        three_mf_path: Output directory for 3MF files, if exported.
        step_path: Output directory for STEP files, if exported.
        stl_path: Output directory for STL files, if exported.
    """

    document: SyncedDocument
    part_studios: list[SyncedPartStudio]
    three_mf_path: Path | None = None
    step_path: Path | None = None
    stl_path: Path | None = None

    def export_formats(self) -> list[ExportFileFormat]:
        """Return formats with a configured output directory, in fixed order."""

        return [
            export_format
            for export_format in ExportFileFormat
            if self.format_path(export_format) is not None
        ]

    def format_path(self, export_format: ExportFileFormat) -> Path | None:
        """Return the output directory configured for one format."""

        if export_format is ExportFileFormat.THREE_MF:
            return self.three_mf_path
        if export_format is ExportFileFormat.STEP:
            return self.step_path
        return self.stl_path

    def output_dirs(self) -> dict[ExportFileFormat, Path]:
        """Return output directories keyed by format for every exported format."""

        resolved: dict[ExportFileFormat, Path] = {}
        for export_format in self.export_formats():
            path = self.format_path(export_format)
            if path is not None:
                resolved[export_format] = path
        return resolved


@dataclass(frozen=True, slots=True)
class Credentials:
    """Onshape API key pair. `repr` never shows the secret."""

    access_key: str
    secret_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables and `.env`.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


def load_environment(env_file: Path | None = None) -> dict[str, str]:
    """Merge the nearest `.env` file (searched upward from the cwd) under `os.environ`.

    Process environment values win over values from the file.
    """

    dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
    file_values = dotenv_values(dotenv_path)
    merged = {key: value for key, value in file_values.items() if value is not None}
    merged.update(os.environ)
    return merged


def resolve_credentials(sources: RuntimeConfigSources) -> Credentials:
    """Resolve the API key pair with precedence `cli` > `secure` > `env`."""

    access_key = _resolve_runtime_value("access_key", ACCESS_KEY_ENV, sources)
    secret_key = _resolve_runtime_value("secret_key", SECRET_KEY_ENV, sources)
    missing = [
        env_key
        for env_key, value in ((ACCESS_KEY_ENV, access_key), (SECRET_KEY_ENV, secret_key))
        if value is None
    ]
    if missing:
        raise ConfigurationError(
            f"Missing Onshape credentials: {', '.join(missing)}.",
            hint=(
                "Set the environment variables (a `.env` file works), pass "
                "`--access-key`/`--secret-key`, or run `offshape store-credentials`."
            ),
        )
    return Credentials(access_key=access_key, secret_key=secret_key)


def _resolve_runtime_value(
    key: str, env_key: str, sources: RuntimeConfigSources
) -> str | None:
    """Return the first non-blank value for `key` across ordered sources."""

    for candidate in (
        sources.cli.get(key),
        sources.secure.get(key),
        sources.env.get(env_key),
    ):
        normalized = normalize_optional_string(candidate)
        if normalized is not None:
            return normalized
    return None


class ConfigLoader:
    """Factory methods for loading `SyncConfig`."""

    _SUPPORTED_KEYS = frozenset(
        {"3mf_path", "step_path", "stl_path", "document", "part_studio"}
    )
    _REQUIRED_KEYS = frozenset({"document", "part_studio"})

    @staticmethod
    def from_file(path: Path) -> SyncConfig:
        """Load a manifest, choosing the parser by file suffix."""

        if path.suffix.lower() in {".yaml", ".yml"}:
            return ConfigLoader.from_yaml(path)
        return ConfigLoader.from_toml(path)

    @staticmethod
    def from_toml(path: Path) -> SyncConfig:
        """Load a TOML manifest such as `offshape.toml`."""

        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = tomllib.loads(raw_text)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"TOML config `{path}` is not valid TOML: {exc}") from exc
        return ConfigLoader.from_mapping(
            payload,
            base_dir=path.resolve().parent,
            source_label=f"Config `{path}`",
        )

    @staticmethod
    def from_yaml(path: Path) -> SyncConfig:
        """Load a YAML manifest with the same schema as the TOML form."""

        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping.")
        return ConfigLoader.from_mapping(
            payload,
            base_dir=path.resolve().parent,
            source_label=f"Config `{path}`",
        )

    @staticmethod
    def from_mapping(
        payload: Mapping[str, Any],
        *,
        base_dir: Path,
        source_label: str = "Config",
    ) -> SyncConfig:
        """Build a config from a parsed mapping; relative paths resolve against `base_dir`."""

        ConfigLoader._validate_keys(payload, source_label)

        document = ConfigLoader._document(payload["document"], source_label)
        raw_studios = payload["part_studio"]
        if not isinstance(raw_studios, list):
            raise ValueError(f"{source_label} field `part_studio` must be a list of tables.")
        part_studios = [
            ConfigLoader._part_studio(raw_studio, index, source_label)
            for index, raw_studio in enumerate(raw_studios)
        ]

        paths = {
            export_format: ConfigLoader._optional_path(payload, key, base_dir, source_label)
            for export_format, key in _FORMAT_PATH_KEYS.items()
        }
        return SyncConfig(
            document=document,
            part_studios=part_studios,
            three_mf_path=paths[ExportFileFormat.THREE_MF],
            step_path=paths[ExportFileFormat.STEP],
            stl_path=paths[ExportFileFormat.STL],
        )

    @staticmethod
    def _validate_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Validate supported and required top-level keys."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        missing = sorted(key for key in ConfigLoader._REQUIRED_KEYS if key not in payload)
        if missing:
            key_list = ", ".join(missing)
            raise ValueError(f"{source_label} is missing required key(s): {key_list}.")

    @staticmethod
    def _document(raw: object, source_label: str) -> SyncedDocument:
        """Read the `[document]` table."""

        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `document` must be a table.")
        return SyncedDocument(
            id=ConfigLoader._required_string(raw, "id", f"{source_label} `document`"),
            workspace_id=ConfigLoader._required_string(
                raw, "workspace_id", f"{source_label} `document`"
            ),
        )

    @staticmethod
    def _part_studio(raw: object, index: int, source_label: str) -> SyncedPartStudio:
        """Read one `[[part_studio]]` entry."""

        label = f"{source_label} `part_studio[{index}]`"
        if not isinstance(raw, Mapping):
            raise ValueError(f"{label} must be a table.")
        studio_id = ConfigLoader._required_string(raw, "id", label)
        display_name = normalize_optional_string(raw.get("display_name")) or studio_id

        raw_parts = raw.get("synced_parts") or []
        if not isinstance(raw_parts, list):
            raise ValueError(f"{label} field `synced_parts` must be a list.")
        synced_parts: list[SyncedPart] = []
        for part_index, raw_part in enumerate(raw_parts):
            part_label = f"{label} `synced_parts[{part_index}]`"
            if not isinstance(raw_part, Mapping):
                raise ValueError(f"{part_label} must be a table.")
            synced_parts.append(
                SyncedPart(
                    id=ConfigLoader._required_string(raw_part, "id", part_label),
                    basename=ConfigLoader._required_string(raw_part, "basename", part_label),
                )
            )
        return SyncedPartStudio(
            id=studio_id,
            display_name=display_name,
            synced_parts=tuple(synced_parts),
        )

    @staticmethod
    def _required_string(payload: Mapping[str, Any], key: str, source_label: str) -> str:
        """Read a required non-empty string field."""

        value = normalize_optional_string(payload.get(key))
        if value is None:
            raise ValueError(f"{source_label} requires non-empty `{key}`.")
        return value

    @staticmethod
    def _optional_path(
        payload: Mapping[str, Any], key: str, base_dir: Path, source_label: str
    ) -> Path | None:
        """Read an optional output directory, resolving it against `base_dir`."""

        if key not in payload:
            return None
        value = normalize_optional_string(payload[key])
        if value is None:
            raise ValueError(f"{source_label} field `{key}` must be a non-empty path.")
        return base_dir / Path(value).expanduser()
