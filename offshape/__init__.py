"""Top-level package for offshape.

offshape pulls 3MF, STEP, and STL exports of Onshape parts into a local
directory tree. The main orchestration entry point is `ExportOrchestrator`,
driven through the `OnshapeClient`.
"""

from .onshape.client import OnshapeClient
from .pipeline.orchestrator import ExportOptions, ExportOrchestrator

__all__ = ["ExportOptions", "ExportOrchestrator", "OnshapeClient", "__version__"]

__version__ = "0.2.0"
