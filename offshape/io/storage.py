"""Output file materialization.

Responsibilities:
- Create and optionally clean per-format output directories.
- Write exported artifacts, pinning timestamps for reproducible output trees.
"""

from __future__ import annotations

import os
from pathlib import Path

from ..models.datatypes import OutputArtifact


REPRODUCIBLE_TIMESTAMP = 0


class OutputStore:
    """Filesystem writer for exported CAD files."""

    def prepare_directory(self, directory: Path, extension: str, clean: bool) -> list[Path]:
        """Create `directory` and, when `clean`, delete its `*.{extension}` files.

        Only the top level is cleaned; subdirectories are left untouched.

        Returns:
            Paths that were removed.
        """

        directory.mkdir(parents=True, exist_ok=True)
        if not clean:
            return []

        removed: list[Path] = []
        suffix = f".{extension}"
        for entry in sorted(directory.iterdir()):
            if entry.is_file() and entry.name.endswith(suffix):
                entry.unlink()
                removed.append(entry)
        return removed

    def write(self, artifact: OutputArtifact) -> Path:
        """Write artifact bytes to a fresh file and return its path."""

        path = artifact.path
        path.write_bytes(artifact.content)
        if artifact.strip_nondeterminism:
            os.utime(path, (REPRODUCIBLE_TIMESTAMP, REPRODUCIBLE_TIMESTAMP))
        return path
