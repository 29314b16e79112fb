"""Command-line interface for offshape.

Responsibilities:
- Expose `pull`, `show-parts`, and credential management commands.
- Load the sync manifest, resolve credentials, and build the Onshape client.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import echo_export_summary, exit_with_command_error
from .cli_runtime import resolve_runtime_sources
from .config import DEFAULT_CONFIG_FILENAME, ConfigLoader, SyncConfig, resolve_credentials
from .credentials import create_credential_store
from .errors import ConfigurationError
from .onshape.client import OnshapeClient
from .pipeline.orchestrator import ExportOptions, ExportOrchestrator
from .show import OutputFormat, show_parts
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="offshape",
    no_args_is_help=True,
    help="Pull CAD files (3MF, STEP, STL) from Onshape into your repository.",
)


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options shared by every command."""

    config_path: Path
    proxy_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None


def _load_config(config_path: Path) -> SyncConfig:
    """Load the sync manifest and map failures to configuration errors."""

    if not config_path.exists():
        raise ConfigurationError(
            f"{config_path.name} not found (looked for `{config_path}`).",
            hint=f"Create `{DEFAULT_CONFIG_FILENAME}` or pass `--config <path>`.",
        )
    try:
        return ConfigLoader.from_file(config_path)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except OSError as exc:
        raise ConfigurationError(
            f"Failed to read config file `{config_path}`: {exc}",
            hint="Verify file permissions.",
        ) from exc


def _build_client(options: GlobalOptions) -> OnshapeClient:
    """Resolve credentials and construct the Onshape client."""

    sources = resolve_runtime_sources(
        access_key=options.access_key,
        secret_key=options.secret_key,
        credential_store_factory=create_credential_store,
    )
    credentials = resolve_credentials(sources)
    return OnshapeClient(
        credentials.access_key,
        credentials.secret_key,
        proxy_url=options.proxy_url,
    )


@app.callback()
def global_options_callback(
    ctx: typer.Context,
    config_path: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to the sync manifest (TOML, or YAML by `.yaml`/`.yml` suffix).",
        ),
    ] = Path(DEFAULT_CONFIG_FILENAME),
    proxy_url: Annotated[
        str | None,
        typer.Option(
            "--proxy",
            "-p",
            metavar="PROXY_URL",
            help="Route requests through a debugging proxy (disables TLS verification).",
        ),
    ] = None,
    access_key: Annotated[
        str | None,
        typer.Option("--access-key", help="Onshape API access key override."),
    ] = None,
    secret_key: Annotated[
        str | None,
        typer.Option(
            "--secret-key",
            help="Onshape API secret key override. Prefer the environment or keyring.",
        ),
    ] = None,
) -> None:
    """Pull CAD files from Onshape."""

    ctx.obj = GlobalOptions(
        config_path=config_path,
        proxy_url=proxy_url,
        access_key=access_key,
        secret_key=secret_key,
    )


@app.command("pull")
def pull_command(
    ctx: typer.Context,
    no_clean_paths: Annotated[
        bool,
        typer.Option(
            "--no-clean-paths",
            help="Keep existing files in output directories instead of deleting them first.",
        ),
    ] = False,
    strip_indeterminism: Annotated[
        bool,
        typer.Option(
            "--strip-indeterminism/--keep-indeterminism",
            help=(
                "Strip export timestamps from file contents and pin file "
                "modification times so unchanged geometry produces identical trees."
            ),
        ),
    ] = True,
) -> None:
    """Pull the latest CAD files and write them to the manifest's paths."""

    options: GlobalOptions = ctx.obj
    try:
        config = _load_config(options.config_path)
        client = _build_client(options)
        orchestrator = ExportOrchestrator(
            client,
            options=ExportOptions(
                clean_paths=not no_clean_paths,
                strip_nondeterminism=strip_indeterminism,
            ),
            run_logger=RunLogger(),
        )
        summary = orchestrator.export(config)
    except Exception as exc:
        exit_with_command_error("pull", exc)

    echo_export_summary(summary)


@app.command("show-parts")
def show_parts_command(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Listing format."),
    ] = OutputFormat.FRIENDLY,
) -> None:
    """Display all parts found in the manifest's part studios."""

    options: GlobalOptions = ctx.obj
    try:
        config = _load_config(options.config_path)
        client = _build_client(options)
        show_parts(client, config, output_format, echo=typer.echo)
    except Exception as exc:
        exit_with_command_error("show-parts", exc)


@app.command("store-credentials")
def store_credentials_command(ctx: typer.Context) -> None:
    """Save the Onshape API key pair in the OS keyring."""

    options: GlobalOptions = ctx.obj
    try:
        access_key = options.access_key or typer.prompt("Onshape access key").strip()
        secret_key = options.secret_key or typer.prompt(
            "Onshape secret key (hidden)",
            hide_input=True,
        ).strip()
        create_credential_store().set_credentials(access_key, secret_key)
    except Exception as exc:
        exit_with_command_error("store-credentials", exc)

    typer.echo("Stored Onshape credentials in secure credential storage.")


@app.command("clear-credentials")
def clear_credentials_command() -> None:
    """Remove the stored Onshape API key pair from the OS keyring."""

    try:
        removed = create_credential_store().clear_credentials()
    except Exception as exc:
        exit_with_command_error("clear-credentials", exc)

    if removed:
        typer.echo("Removed stored Onshape credentials.")
    else:
        typer.echo("No stored Onshape credentials found.")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
