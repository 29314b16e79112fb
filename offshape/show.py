"""Part-studio inspection for writing `offshape.toml` entries.

Lists every part of each configured part studio, either as friendly text with
a ready-to-paste `synced_parts` entry or as the raw JSON listing.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol

from .config import SyncConfig
from .errors import ResolutionError
from .models.datatypes import DocumentElement, Part
from .parsing import snake_case


class OutputFormat(str, Enum):
    """Rendering mode for `show-parts`."""

    FRIENDLY = "friendly"
    JSON = "json"


class PartInspectionClient(Protocol):
    """Client operations needed by `show_parts`."""

    def list_elements(
        self, document_id: str, workspace_id: str
    ) -> dict[str, DocumentElement]:
        """Return document elements keyed by id."""

    def list_parts(
        self, document_id: str, workspace_id: str, element_id: str
    ) -> list[Part]:
        """Return parts of one part studio."""

    def list_parts_json(self, document_id: str, workspace_id: str, element_id: str) -> str:
        """Return the raw parts listing."""


def config_entry(part: Part) -> str:
    """Return the `synced_parts` TOML entry for one part."""

    return f'{{ id = "{part.part_id}", basename = "{snake_case(part.name)}" }},'


def render_part(part: Part) -> str:
    """Render one part as a friendly text block."""

    return "\n".join(
        [
            f"PART {part.name}",
            f"  part_id: {part.part_id}",
            f"  element_id: {part.element_id}",
            f"  microversion_id: {part.microversion_id}",
            "offshape.toml entry:",
            f"# {part.name}",
            config_entry(part),
            "",
        ]
    )


def show_parts(
    client: PartInspectionClient,
    config: SyncConfig,
    output_format: OutputFormat = OutputFormat.FRIENDLY,
    echo: Callable[[str], None] = print,
) -> None:
    """Print the parts of every configured part studio."""

    document_id = config.document.id
    workspace_id = config.document.workspace_id
    elements = client.list_elements(document_id, workspace_id)

    for studio in config.part_studios:
        if studio.id not in elements:
            raise ResolutionError(f"Could not find a part studio ({studio.id}).")

        if output_format is OutputFormat.JSON:
            echo(client.list_parts_json(document_id, workspace_id, studio.id))
            continue

        echo(f"PART_STUDIO {studio.display_name}\n")
        for part in client.list_parts(document_id, workspace_id, studio.id):
            echo(render_part(part))
