"""Domain exceptions for export orchestration and CLI diagnostics."""

from __future__ import annotations


class OffshapeError(RuntimeError):
    """Raised when a specific export stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped export error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ConfigurationError(OffshapeError):
    """Raised when configuration or credentials are missing or invalid."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        super().__init__(stage="config", detail=detail, hint=hint)


class ResolutionError(OffshapeError):
    """Raised when a configured part studio or part is absent from the live listing."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        super().__init__(stage="resolve", detail=detail, hint=hint)


class TransportError(OffshapeError):
    """Raised when an Onshape request fails or violates the expected protocol."""

    def __init__(
        self,
        detail: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize transport error metadata for request-level diagnostics."""

        super().__init__(stage="transport", detail=detail, hint=hint)
        self.failure_kind = failure_kind
        self.status_code = status_code


class InvalidStateError(OffshapeError):
    """Raised when a translation job is not in a downloadable state."""

    def __init__(self, detail: str) -> None:
        super().__init__(stage="download", detail=detail)


class JobFailure(OffshapeError):
    """Server-reported translation failure for one job.

    Collected per job by the orchestrator; never raised past the poll loop.
    """

    def __init__(self, *, job_name: str, output_filename: str, reason: str) -> None:
        super().__init__(
            stage="translate",
            detail=f"Translation of `{output_filename}` failed: {reason}",
        )
        self.job_name = job_name
        self.output_filename = output_filename
        self.reason = reason
