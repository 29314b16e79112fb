"""Core datatypes shared across offshape modules.

Responsibilities:
- Represent Onshape listing records and translation jobs as immutable values.
- Describe export targets and output artifacts exchanged between the client,
  the orchestrator, and the output store.

Key types:
- `ExportFileFormat`, `ExportAction`, `TranslationState`, `DocumentElement`,
  `Part`, `ExportTarget`, `TranslationJob`, `OutputArtifact`, and
  `ExportSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from ..errors import JobFailure, TransportError


class ExportAction(Enum):
    """How a format is obtained from the service."""

    TRANSLATE = "translate"
    DIRECT = "direct"


class ExportFileFormat(Enum):
    """Output formats supported by the export pipeline.

    Values are the Onshape `formatName` identifiers.
    """

    THREE_MF = "3MF"
    STEP = "STEP"
    STL = "STL"

    @property
    def extension(self) -> str:
        """Return the file extension (without dot) written for this format."""

        return _EXTENSIONS[self]

    @property
    def export_action(self) -> ExportAction:
        """Return whether this format needs an async translation job."""

        if self is ExportFileFormat.STL:
            return ExportAction.DIRECT
        return ExportAction.TRANSLATE

    @property
    def is_textual(self) -> bool:
        """Return whether translated payloads are line-oriented text."""

        return self is ExportFileFormat.STEP


_EXTENSIONS = {
    ExportFileFormat.THREE_MF: "3mf",
    ExportFileFormat.STEP: "step",
    ExportFileFormat.STL: "stl",
}


class TranslationState(Enum):
    """Lifecycle state reported for a server-side translation job."""

    ACTIVE = "ACTIVE"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        """Return whether the job will not change state again."""

        return self is not TranslationState.ACTIVE

    @classmethod
    def parse(cls, raw: object) -> TranslationState:
        """Parse a `requestState` token, accepting `PENDING` as active."""

        token = str(raw).strip().upper()
        if token == "PENDING":
            return cls.ACTIVE
        try:
            return cls(token)
        except ValueError as exc:
            raise TransportError(
                f"Onshape returned unknown translation state `{raw}`.",
                failure_kind="protocol",
            ) from exc


@dataclass(frozen=True, slots=True)
class DocumentElement:
    """One tab (element) of an Onshape document workspace.

    Attributes:
        id: Element identifier.
        name: Tab display name.
        element_type: Tab type token, for example `PARTSTUDIO`.
        file_name: Optional file name for imported blob elements.
    """

    id: str
    name: str
    element_type: str
    file_name: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DocumentElement:
        """Build an element from an Onshape elements listing entry."""

        return cls(
            id=_require_field(payload, "id"),
            name=str(payload.get("name", "")),
            element_type=str(payload.get("elementType", "UNKNOWN")),
            file_name=payload.get("filename"),
        )


@dataclass(frozen=True, slots=True)
class Part:
    """One part listed inside a part studio."""

    name: str
    part_id: str
    element_id: str
    microversion_id: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Part:
        """Build a part from an Onshape parts listing entry."""

        return cls(
            name=str(payload.get("name", "")),
            part_id=_require_field(payload, "partId"),
            element_id=str(payload.get("elementId", "")),
            microversion_id=str(payload.get("microversionId", "")),
        )


@dataclass(frozen=True, slots=True)
class ExportTarget:
    """One part to produce in one output format.

    Attributes:
        document_id: Onshape document identifier.
        workspace_id: Workspace identifier inside the document.
        element_id: Part studio (element) identifier.
        part_id: Part identifier inside the part studio.
        basename: Output file basename without extension.
        format: Requested output format.
    """

    document_id: str
    workspace_id: str
    element_id: str
    part_id: str
    basename: str
    format: ExportFileFormat

    @property
    def output_filename(self) -> str:
        """Return `{basename}.{extension}` for this target."""

        return f"{self.basename}.{self.format.extension}"


@dataclass(frozen=True, slots=True)
class TranslationJob:
    """Server-side conversion task plus the output it was submitted for.

    Instances are never mutated; polling returns a fresh job via `refreshed`.
    """

    name: str
    href: str
    request_state: TranslationState
    document_id: str
    format: ExportFileFormat
    output_filename: str
    failure_reason: str | None = None
    result_external_data_ids: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        format: ExportFileFormat,
        output_filename: str,
    ) -> TranslationJob:
        """Build a job from an Onshape translation status payload."""

        result_ids = payload.get("resultExternalDataIds") or ()
        return cls(
            name=str(payload.get("name", "")),
            href=_require_field(payload, "href"),
            request_state=TranslationState.parse(payload.get("requestState")),
            document_id=str(payload.get("documentId", "")),
            format=format,
            output_filename=output_filename,
            failure_reason=payload.get("failureReason"),
            result_external_data_ids=tuple(str(item) for item in result_ids),
        )

    def refreshed(self, payload: Mapping[str, Any]) -> TranslationJob:
        """Return a copy reflecting a newer status payload for the same job."""

        return TranslationJob.from_payload(
            payload,
            format=self.format,
            output_filename=self.output_filename,
        )

    def to_failure(self) -> JobFailure:
        """Describe this failed job as a `JobFailure` record."""

        return JobFailure(
            job_name=self.name,
            output_filename=self.output_filename,
            reason=self.failure_reason or "Unknown reason",
        )


@dataclass(frozen=True, slots=True)
class OutputArtifact:
    """Bytes to materialize at one destination path."""

    path: Path
    content: bytes
    strip_nondeterminism: bool = True


@dataclass(slots=True)
class ExportSummary:
    """Outcome of one export run.

    Attributes:
        written: Paths written, in write order.
        failures: Server-reported translation failures.
        poll_iterations: Number of poll passes over the in-flight job set.
    """

    written: list[Path] = field(default_factory=list)
    failures: list[JobFailure] = field(default_factory=list)
    poll_iterations: int = 0


def _require_field(payload: Mapping[str, Any], key: str) -> str:
    """Read a required non-empty string field from a response payload."""

    value = payload.get(key)
    if value is None or not str(value).strip():
        raise TransportError(
            f"Onshape response is missing required field `{key}`.",
            failure_kind="protocol",
        )
    return str(value)
