"""Export pipeline: target resolution and translation-job orchestration."""

from .orchestrator import ExportOptions, ExportOrchestrator, partition_jobs
from .resolution import resolve_export_targets

__all__ = [
    "ExportOptions",
    "ExportOrchestrator",
    "partition_jobs",
    "resolve_export_targets",
]
