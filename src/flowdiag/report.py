# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Host-facing reports built on top of :class:`~flowdiag.collect.FlowChecker`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final

from .collect import FlowChecker, ProgramOffset
from .models import CoverageResult, Location, NormalizedDiagnostic, Skipped, Unsupported
from .severity import Severity

_COVERAGE_MESSAGE: Final[str] = "Expected coverage to be at least {minimum}%, but is: {actual}%"


class ReportStatus(str, Enum):
    """How a check concluded."""

    OK = "ok"
    SKIPPED = "skipped"
    UNSUPPORTED = "unsupported"


@dataclass(slots=True)
class LintReport:
    """Diagnostics for one file along with how the check concluded."""

    path: str
    status: ReportStatus
    diagnostics: list[NormalizedDiagnostic] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for diagnostic in self.diagnostics if diagnostic.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for diagnostic in self.diagnostics if diagnostic.severity is Severity.WARNING)

    @property
    def failed(self) -> bool:
        return self.error_count > 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "diagnostics": [diagnostic.to_payload() for diagnostic in self.diagnostics],
        }


@dataclass(slots=True)
class CoverageReport:
    """Coverage counters for one file."""

    path: str
    status: ReportStatus
    result: CoverageResult = field(default_factory=CoverageResult)

    def meets(self, minimum: float | None) -> bool:
        """Return ``True`` when coverage is at least ``minimum`` percent, or nothing was measured."""
        if minimum is None or self.status is not ReportStatus.OK:
            return True
        return self.result.percent >= minimum

    def threshold_diagnostic(self, minimum: float) -> NormalizedDiagnostic | None:
        """Return an error diagnostic when coverage falls below ``minimum``."""
        if self.meets(minimum):
            return None
        message = _COVERAGE_MESSAGE.format(minimum=minimum, actual=self.result.percent)
        return NormalizedDiagnostic(
            severity=Severity.ERROR,
            message=message,
            path=self.path,
            location=Location.degenerate(),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            **self.result.to_payload(),
            "percent": self.result.percent,
        }


def lint_source(
    checker: FlowChecker,
    source: str,
    *,
    root: str,
    filepath: str,
    offset: ProgramOffset | Mapping[str, int] = ProgramOffset(),
    stop_on_exit: bool = False,
) -> LintReport:
    """Check ``source`` and wrap the outcome in a :class:`LintReport`."""
    result = checker.collect(source, root, stop_on_exit, filepath, offset)
    if isinstance(result, Skipped):
        return LintReport(path=filepath, status=ReportStatus.SKIPPED)
    if isinstance(result, Unsupported):
        return LintReport(path=filepath, status=ReportStatus.UNSUPPORTED)
    return LintReport(path=filepath, status=ReportStatus.OK, diagnostics=result)


def coverage_report(
    checker: FlowChecker,
    source: str,
    *,
    root: str,
    filepath: str,
    stop_on_exit: bool = False,
) -> CoverageReport:
    """Measure coverage of ``source`` and wrap the outcome in a :class:`CoverageReport`."""
    result = checker.coverage(source, root, stop_on_exit, filepath)
    if isinstance(result, Skipped):
        return CoverageReport(path=filepath, status=ReportStatus.SKIPPED)
    if isinstance(result, Unsupported):
        return CoverageReport(path=filepath, status=ReportStatus.UNSUPPORTED)
    return CoverageReport(path=filepath, status=ReportStatus.OK, result=result)


__all__ = [
    "CoverageReport",
    "LintReport",
    "ReportStatus",
    "coverage_report",
    "lint_source",
]
