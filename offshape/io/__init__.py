"""Filesystem I/O helpers for exported artifacts."""

from .storage import OutputStore

__all__ = ["OutputStore"]
