"""Export target resolution against the live Onshape listing.

Responsibilities:
- Confirm every configured part studio and part exists before any job is submitted.
- Expand studios without pinned parts into all of their listed parts.
"""

from __future__ import annotations

from typing import Protocol

from ..config import SyncConfig
from ..errors import ResolutionError
from ..models.datatypes import DocumentElement, ExportFileFormat, ExportTarget, Part
from ..parsing import snake_case


class PartListingClient(Protocol):
    """Client operations needed to resolve export targets."""

    def list_elements(
        self, document_id: str, workspace_id: str
    ) -> dict[str, DocumentElement]:
        """Return document elements keyed by id."""

    def list_parts(
        self, document_id: str, workspace_id: str, element_id: str
    ) -> list[Part]:
        """Return parts of one part studio."""


def resolve_export_targets(
    client: PartListingClient,
    config: SyncConfig,
    formats: list[ExportFileFormat] | None = None,
) -> list[ExportTarget]:
    """Resolve the manifest into export targets, failing on the first missing id.

    Targets are ordered by part studio, then part, then format.

    Raises:
        ResolutionError: A configured part studio or part id is not in the listing,
            or two parts would share an output basename.
    """

    document_id = config.document.id
    workspace_id = config.document.workspace_id
    resolved_formats = formats if formats is not None else config.export_formats()

    elements = client.list_elements(document_id, workspace_id)
    targets: list[ExportTarget] = []
    owners: dict[str, tuple[str, str]] = {}
    for studio in config.part_studios:
        if studio.id not in elements:
            raise ResolutionError(
                f"Could not find a part studio ({studio.id}) named "
                f"`{studio.display_name}` in document {document_id}.",
                hint="Run `offshape show-parts` to inspect the document's part studios.",
            )

        parts_by_id = {
            part.part_id: part
            for part in client.list_parts(document_id, workspace_id, studio.id)
        }
        if studio.synced_parts:
            selected: list[tuple[str, str]] = []
            for synced_part in studio.synced_parts:
                if synced_part.id not in parts_by_id:
                    raise ResolutionError(
                        f"Part not found, part_id={synced_part.id} "
                        f"(part studio `{studio.display_name}`).",
                        hint="Run `offshape show-parts` to list valid part ids.",
                    )
                selected.append((synced_part.id, synced_part.basename))
        else:
            selected = [
                (part.part_id, snake_case(part.name) or part.part_id)
                for part in parts_by_id.values()
            ]

        for part_id, basename in selected:
            claimed_by = owners.setdefault(basename, (studio.id, part_id))
            if claimed_by != (studio.id, part_id):
                raise ResolutionError(
                    f"Parts {claimed_by[1]} and {part_id} would both be written as "
                    f"`{basename}` (part studio `{studio.display_name}`).",
                    hint="Pin the parts in `synced_parts` with distinct basenames.",
                )
            for export_format in resolved_formats:
                targets.append(
                    ExportTarget(
                        document_id=document_id,
                        workspace_id=workspace_id,
                        element_id=studio.id,
                        part_id=part_id,
                        basename=basename,
                        format=export_format,
                    )
                )
    return targets
