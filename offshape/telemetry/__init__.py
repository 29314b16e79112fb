"""Telemetry and observability helpers.

This package emits run events for export progress and failures.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
