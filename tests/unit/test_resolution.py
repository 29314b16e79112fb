"""Unit tests for resolving manifest entries into export targets."""

from __future__ import annotations

from pathlib import Path

import pytest

from offshape.config import SyncConfig, SyncedDocument, SyncedPart, SyncedPartStudio
from offshape.errors import ResolutionError
from offshape.models.datatypes import DocumentElement, ExportFileFormat, Part
from offshape.pipeline.resolution import resolve_export_targets


class ListingClient:
    """Listing-only client double backed by fixed studio contents."""

    def __init__(self, parts_by_studio: dict[str, list[Part]]) -> None:
        """Initialize with parts keyed by studio element id."""

        self.parts_by_studio = parts_by_studio
        self.listed_studios: list[str] = []

    def list_elements(self, document_id: str, workspace_id: str) -> dict[str, DocumentElement]:
        """Return one part-studio element per configured studio."""

        return {
            studio_id: DocumentElement(id=studio_id, name=studio_id, element_type="PARTSTUDIO")
            for studio_id in self.parts_by_studio
        }

    def list_parts(self, document_id: str, workspace_id: str, element_id: str) -> list[Part]:
        """Return the studio's parts and record the lookup."""

        self.listed_studios.append(element_id)
        return self.parts_by_studio[element_id]


def _part(name: str, part_id: str, element_id: str) -> Part:
    return Part(name=name, part_id=part_id, element_id=element_id, microversion_id="mv")


def _config(*studios: SyncedPartStudio, tmp_path: Path) -> SyncConfig:
    return SyncConfig(
        document=SyncedDocument(id="d1", workspace_id="w1"),
        part_studios=list(studios),
        three_mf_path=tmp_path / "3mf",
        stl_path=tmp_path / "stl",
    )


def test_targets_are_ordered_by_studio_then_part_then_format(tmp_path: Path) -> None:
    """Pinned parts should expand to one target per configured format, in order."""

    client = ListingClient(
        {
            "e1": [_part("Bracket", "A", "e1"), _part("Lid", "B", "e1")],
            "e2": [_part("Hinge", "C", "e2")],
        }
    )
    config = _config(
        SyncedPartStudio(
            id="e1",
            display_name="Brackets",
            synced_parts=(SyncedPart("B", "lid"), SyncedPart("A", "bracket")),
        ),
        SyncedPartStudio(id="e2", display_name="Hinges", synced_parts=(SyncedPart("C", "hinge"),)),
        tmp_path=tmp_path,
    )

    targets = resolve_export_targets(client, config)

    assert [(t.element_id, t.part_id, t.format) for t in targets] == [
        ("e1", "B", ExportFileFormat.THREE_MF),
        ("e1", "B", ExportFileFormat.STL),
        ("e1", "A", ExportFileFormat.THREE_MF),
        ("e1", "A", ExportFileFormat.STL),
        ("e2", "C", ExportFileFormat.THREE_MF),
        ("e2", "C", ExportFileFormat.STL),
    ]
    assert targets[0].output_filename == "lid.3mf"
    assert {(t.document_id, t.workspace_id) for t in targets} == {("d1", "w1")}


def test_studio_without_pinned_parts_exports_every_part(tmp_path: Path) -> None:
    """An empty part list should expand to all listed parts with snake_case basenames."""

    client = ListingClient(
        {"e1": [_part("Lid Hinge v2", "A", "e1"), _part("!!!", "B", "e1")]}
    )
    config = _config(SyncedPartStudio(id="e1", display_name="e1"), tmp_path=tmp_path)

    targets = resolve_export_targets(client, config, [ExportFileFormat.STEP])

    assert [target.output_filename for target in targets] == ["lid_hinge_v2.step", "B.step"]


def test_missing_part_studio_fails_before_listing_parts(tmp_path: Path) -> None:
    """A studio id absent from the document should abort resolution."""

    client = ListingClient({"e1": []})
    config = _config(
        SyncedPartStudio(id="e1", display_name="Brackets"),
        SyncedPartStudio(id="gone", display_name="Old studio"),
        tmp_path=tmp_path,
    )

    with pytest.raises(ResolutionError, match=r"Could not find a part studio \(gone\)") as excinfo:
        resolve_export_targets(client, config)

    assert excinfo.value.stage == "resolve"
    assert client.listed_studios == ["e1"]


def test_missing_part_fails_with_part_id(tmp_path: Path) -> None:
    """A pinned part id absent from the listing should abort resolution."""

    client = ListingClient({"e1": [_part("Bracket", "A", "e1")]})
    config = _config(
        SyncedPartStudio(
            id="e1",
            display_name="Brackets",
            synced_parts=(SyncedPart("A", "bracket"), SyncedPart("ZZ", "ghost")),
        ),
        tmp_path=tmp_path,
    )

    with pytest.raises(ResolutionError, match="Part not found, part_id=ZZ"):
        resolve_export_targets(client, config)


def test_expanded_parts_with_colliding_basenames_fail_before_submission(tmp_path: Path) -> None:
    """Two parts mapping to one basename should abort instead of overwriting a file."""

    client = ListingClient(
        {"e1": [_part("Lid Hinge", "A", "e1"), _part("LidHinge", "B", "e1")]}
    )
    config = _config(SyncedPartStudio(id="e1", display_name="Lids"), tmp_path=tmp_path)

    with pytest.raises(ResolutionError, match=r"Parts A and B would both be written as `lid_hinge`"):
        resolve_export_targets(client, config)


def test_basename_collisions_are_detected_across_studios(tmp_path: Path) -> None:
    """The same basename pinned in two studios should also be rejected."""

    client = ListingClient(
        {"e1": [_part("Bracket", "A", "e1")], "e2": [_part("Bracket", "A", "e2")]}
    )
    config = _config(
        SyncedPartStudio(id="e1", display_name="Left", synced_parts=(SyncedPart("A", "bracket"),)),
        SyncedPartStudio(id="e2", display_name="Right", synced_parts=(SyncedPart("A", "bracket"),)),
        tmp_path=tmp_path,
    )

    with pytest.raises(ResolutionError, match="`bracket`"):
        resolve_export_targets(client, config)
