"""Shared parsing helpers for configuration values and part names."""

from __future__ import annotations

import re


_WORD_BOUNDARY_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+[0-9]*|[A-Z]+[0-9]*|[0-9]+")


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def snake_case(name: str) -> str:
    """Convert a free-form part name into a snake_case file basename.

    Words split on case changes and on any non-alphanumeric separator;
    trailing digits stay attached, so `"Lid Hinge v2"` and `"LidHingeV2"`
    both become `"lid_hinge_v2"`.
    """

    words = _WORD_BOUNDARY_PATTERN.findall(name)
    return "_".join(word.lower() for word in words)
