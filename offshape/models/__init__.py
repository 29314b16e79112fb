"""Shared typed data models for offshape.

This package contains dataclasses used across client, pipeline, and storage
modules to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    DocumentElement,
    ExportAction,
    ExportFileFormat,
    ExportSummary,
    ExportTarget,
    OutputArtifact,
    Part,
    TranslationJob,
    TranslationState,
)

__all__ = [
    "DocumentElement",
    "ExportAction",
    "ExportFileFormat",
    "ExportSummary",
    "ExportTarget",
    "OutputArtifact",
    "Part",
    "TranslationJob",
    "TranslationState",
]
