# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from enum import Enum
from typing import Final


class Severity(str, Enum):
    """Severity levels reported by the Flow checker."""

    ERROR = "error"
    WARNING = "warning"


_SEVERITY_ALIASES: Final[dict[str, Severity]] = {
    "error": Severity.ERROR,
    "err": Severity.ERROR,
    "warning": Severity.WARNING,
    "warn": Severity.WARNING,
}


def coerce_severity(value: object, default: Severity = Severity.ERROR) -> Severity:
    """Map a raw ``level`` value emitted by Flow onto :class:`Severity`.

    Args:
        value: Level string taken from the checker payload, possibly ``None``.
        default: Severity returned when ``value`` is missing or unrecognised.

    Returns:
        Severity: Normalised severity.
    """

    if isinstance(value, Severity):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    return _SEVERITY_ALIASES.get(value.strip().lower(), default)


__all__ = ["Severity", "coerce_severity"]
