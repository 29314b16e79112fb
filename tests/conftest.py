"""Shared pytest fixtures for the full offshape test suite."""

from __future__ import annotations

import io

import pytest

from offshape.telemetry.logger import RunLogger


@pytest.fixture
def log_sink() -> io.StringIO:
    """Provide an in-memory sink for captured run log lines."""

    return io.StringIO()


@pytest.fixture
def run_logger(log_sink: io.StringIO) -> RunLogger:
    """Provide a run logger writing to `log_sink`."""

    return RunLogger(sink=log_sink, level="DEBUG")
