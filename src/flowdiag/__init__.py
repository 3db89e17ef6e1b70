# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Normalise Flow type-checker output into per-file diagnostics."""

from __future__ import annotations

from .collect import FlowChecker, ProgramOffset, collect, coverage, default_checker
from .envelope import decode_envelope
from .errors import ConfigError, FlowBinaryNotFoundError, FlowDiagError
from .formatting import format_message
from .models import (
    CoverageResult,
    Location,
    NormalizedDiagnostic,
    Position,
    Skipped,
    Unsupported,
    as_legacy,
)
from .severity import Severity

__all__ = [
    "ConfigError",
    "CoverageResult",
    "FlowBinaryNotFoundError",
    "FlowChecker",
    "FlowDiagError",
    "Location",
    "NormalizedDiagnostic",
    "Position",
    "ProgramOffset",
    "Severity",
    "Skipped",
    "Unsupported",
    "as_legacy",
    "collect",
    "coverage",
    "decode_envelope",
    "default_checker",
    "format_message",
]
