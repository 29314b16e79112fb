"""Export orchestration for offshape.

Responsibilities:
- Prepare output directories, then export every target: direct formats are
  fetched and written immediately, translated formats are submitted as jobs.
- Poll the in-flight job set until every job is terminal, writing finished
  files and reporting failed jobs without aborting their siblings.

Key types:
- `ExportOptions`: run-level switches from the CLI.
- `ExportOrchestrator`: drives one batch of export targets to completion.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from ..config import SyncConfig
from ..errors import ConfigurationError
from ..io.storage import OutputStore
from ..models.datatypes import (
    ExportAction,
    ExportFileFormat,
    ExportSummary,
    ExportTarget,
    OutputArtifact,
    TranslationJob,
    TranslationState,
)
from ..telemetry.logger import RunLogger
from .resolution import PartListingClient, resolve_export_targets


class ExportClient(PartListingClient, Protocol):
    """Client operations the orchestrator drives."""

    def begin_translation(
        self,
        format: ExportFileFormat,
        document_id: str,
        workspace_id: str,
        element_id: str,
        part_id: str,
        basename: str,
    ) -> TranslationJob:
        """Submit one translation job."""

    def poll_translation(self, job: TranslationJob) -> TranslationJob:
        """Fetch a job's current state."""

    def fetch_direct_artifact(
        self, document_id: str, workspace_id: str, element_id: str, part_id: str
    ) -> bytes:
        """Fetch a synchronously exported artifact."""

    def download_artifact(
        self, job: TranslationJob, strip_nondeterminism: bool = False
    ) -> bytes:
        """Download a finished job's result."""


@dataclass(frozen=True, slots=True)
class ExportOptions:
    """Run-level export switches.

    Attributes:
        clean_paths: Delete existing files of each exported extension first.
        strip_nondeterminism: Pin file timestamps and drop embedded export dates.
    """

    clean_paths: bool = True
    strip_nondeterminism: bool = True


@dataclass(slots=True)
class PollPartition:
    """Jobs of one poll pass grouped by state, each in poll order."""

    still_active: list[TranslationJob]
    done: list[TranslationJob]
    failed: list[TranslationJob]


def partition_jobs(jobs: list[TranslationJob]) -> PollPartition:
    """Split freshly polled jobs into active, done, and failed buckets."""

    partition = PollPartition(still_active=[], done=[], failed=[])
    for job in jobs:
        if job.request_state is TranslationState.DONE:
            partition.done.append(job)
        elif job.request_state is TranslationState.FAILED:
            partition.failed.append(job)
        else:
            partition.still_active.append(job)
    return partition


class ExportOrchestrator:
    """Drive export targets through direct export or translate-and-poll."""

    def __init__(
        self,
        client: ExportClient,
        *,
        options: ExportOptions | None = None,
        run_logger: RunLogger | None = None,
        store: OutputStore | None = None,
    ) -> None:
        """Initialize the orchestrator with its client and collaborators."""

        self.client = client
        self.options = options or ExportOptions()
        self.run_logger = run_logger or RunLogger()
        self.store = store or OutputStore()

    def export(self, config: SyncConfig) -> ExportSummary:
        """Resolve the manifest against the live listing and export everything."""

        output_dirs = config.output_dirs()
        targets = resolve_export_targets(self.client, config, list(output_dirs))
        return self.run(targets, output_dirs)

    def run(
        self,
        targets: list[ExportTarget],
        output_dirs: Mapping[ExportFileFormat, Path],
    ) -> ExportSummary:
        """Export resolved targets into their per-format output directories."""

        missing = sorted(
            {target.format.value for target in targets if target.format not in output_dirs}
        )
        if missing:
            raise ConfigurationError(
                f"No output directory configured for format(s): {', '.join(missing)}."
            )

        summary = ExportSummary()
        self.prepare_outputs(output_dirs)
        jobs = self.submit(targets, output_dirs, summary)
        self.poll_until_complete(jobs, output_dirs, summary)
        return summary

    def prepare_outputs(self, output_dirs: Mapping[ExportFileFormat, Path]) -> None:
        """Create every output directory and clean it when requested."""

        for export_format, directory in output_dirs.items():
            removed = self.store.prepare_directory(
                directory,
                export_format.extension,
                clean=self.options.clean_paths,
            )
            if self.options.clean_paths:
                self.run_logger.log_clean(directory, len(removed))

    def submit(
        self,
        targets: list[ExportTarget],
        output_dirs: Mapping[ExportFileFormat, Path],
        summary: ExportSummary,
    ) -> list[TranslationJob]:
        """Write direct exports now and return the submitted translation jobs."""

        jobs: list[TranslationJob] = []
        for target in targets:
            self.run_logger.log_export(target.output_filename, target.format.value)
            if target.format.export_action is ExportAction.DIRECT:
                content = self.client.fetch_direct_artifact(
                    target.document_id,
                    target.workspace_id,
                    target.element_id,
                    target.part_id,
                )
                self._write(
                    output_dirs[target.format] / target.output_filename,
                    content,
                    summary,
                )
                continue

            jobs.append(
                self.client.begin_translation(
                    target.format,
                    target.document_id,
                    target.workspace_id,
                    target.element_id,
                    target.part_id,
                    target.basename,
                )
            )
        return jobs

    def poll_until_complete(
        self,
        jobs: list[TranslationJob],
        output_dirs: Mapping[ExportFileFormat, Path],
        summary: ExportSummary,
    ) -> None:
        """Poll jobs until none is active; there is no overall timeout."""

        active_jobs = list(jobs)
        while active_jobs:
            summary.poll_iterations += 1
            partition = partition_jobs(
                [self.client.poll_translation(job) for job in active_jobs]
            )
            self.run_logger.log_poll(
                summary.poll_iterations,
                active=len(partition.still_active),
                done=len(partition.done),
                failed=len(partition.failed),
            )

            for job in partition.done:
                content = self.client.download_artifact(
                    job, strip_nondeterminism=self.options.strip_nondeterminism
                )
                self._write(output_dirs[job.format] / job.output_filename, content, summary)

            for job in partition.failed:
                failure = job.to_failure()
                self.run_logger.log_translation_failure(failure.output_filename, failure.reason)
                summary.failures.append(failure)

            active_jobs = partition.still_active

    def _write(self, path: Path, content: bytes, summary: ExportSummary) -> None:
        """Materialize one artifact and record it."""

        written = self.store.write(
            OutputArtifact(
                path=path,
                content=content,
                strip_nondeterminism=self.options.strip_nondeterminism,
            )
        )
        self.run_logger.log_write(written)
        summary.written.append(written)
