# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Data models describing Flow output and the normalised diagnostics built from it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from .severity import Severity

RuleType = Literal["missing-annotation", "default"]
LIB_FILE: Final[str] = "LibFile"
SOURCE_FILE: Final[str] = "SourceFile"


class _FlowModel(BaseModel):
    """Base for models mirroring the checker's JSON vocabulary."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FlowPosition(_FlowModel):
    """Line/column coordinate as reported by Flow."""

    line: int
    column: int
    offset: int | None = None


class FlowLocation(_FlowModel):
    """Source span attached to a Flow message."""

    source: str | None = None
    start: FlowPosition
    end: FlowPosition
    kind: str | None = Field(default=SOURCE_FILE, alias="type")

    @property
    def is_lib_file(self) -> bool:
        """Return ``True`` when the span points into Flow's bundled library definitions."""
        return self.kind == LIB_FILE


class FlowMessage(_FlowModel):
    """One segment of a Flow error; the first segment is the primary message."""

    path: str = ""
    descr: str = ""
    kind: str | None = Field(default="Blame", alias="type")
    line: int = 0
    endline: int = 0
    loc: FlowLocation | None = None


class FlowExtra(_FlowModel):
    """Auxiliary messages referenced from the primary description via ``[N]`` tokens."""

    message: tuple[FlowMessage, ...] = ()


class FlowError(_FlowModel):
    """A single entry of the ``errors`` array."""

    message: tuple[FlowMessage, ...] = Field(min_length=1)
    level: str | None = None
    operation: FlowMessage | None = None
    extra: tuple[FlowExtra, ...] | None = None

    @property
    def primary(self) -> FlowMessage:
        """Return the first message of the error."""
        return self.message[0]

    @property
    def main_loc(self) -> FlowLocation | None:
        """Return the location deciding which file the error belongs to."""
        if self.operation is not None and self.operation.loc is not None:
            return self.operation.loc
        return self.primary.loc


class ExitInfo(_FlowModel):
    """Exit details reported by Flow when it could not produce errors."""

    msg: str = ""
    code: int | str | None = None


class CheckerEnvelope(_FlowModel):
    """Full ``check-contents --json`` document."""

    errors: tuple[FlowError, ...]
    flow_version: str = Field(default="", alias="flowVersion")
    exit: ExitInfo | None = None


class Position(BaseModel):
    """Output coordinate after the program offset has been applied."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    offset: int | None = None


class Location(BaseModel):
    """Output span made of two :class:`Position` values."""

    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position

    @classmethod
    def degenerate(cls, *, with_offset: bool = False) -> Location:
        """Return the ``1:1`` span used when Flow gave no usable location."""
        pos = Position(line=1, column=1, offset=0 if with_offset else None)
        return cls(start=pos, end=pos)


class NormalizedDiagnostic(BaseModel):
    """Diagnostic handed to the linting host."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: RuleType | None = Field(default=None, alias="type")
    severity: Severity = Field(alias="level")
    message: str
    path: str | None = None
    start_line: int | None = Field(default=None, alias="start")
    end_line: int | None = Field(default=None, alias="end")
    location: Location = Field(alias="loc")
    raw: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_payload(self) -> dict[str, Any]:
        """Return the host-facing mapping, merging the raw envelope in debug mode."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if self.raw:
            return {**self.raw, **payload}
        return payload


class CoverageResult(BaseModel):
    """Expression coverage counters reported by ``flow coverage``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    covered_count: int = Field(default=0, alias="coveredCount")
    uncovered_count: int = Field(default=0, alias="uncoveredCount")

    @property
    def total(self) -> int:
        return self.covered_count + self.uncovered_count

    @property
    def percent(self) -> float:
        """Return the covered share as a percentage; an empty file counts as fully covered."""
        if self.total == 0:
            return 100.0
        return round(self.covered_count / self.total * 100, 2)

    def to_payload(self) -> dict[str, int]:
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True, slots=True)
class Skipped:
    """Nothing was checked because the input text was empty."""


@dataclass(frozen=True, slots=True)
class Unsupported:
    """The checker produced no output, typically on an unsupported platform."""

    reason: str = "flow produced no output"


@dataclass(frozen=True, slots=True)
class Completed:
    """Raw standard output captured from a checker run."""

    stdout: str


InvocationResult: TypeAlias = Skipped | Unsupported | Completed
CollectResult: TypeAlias = Skipped | Unsupported | list[NormalizedDiagnostic]
CoverageOutcome: TypeAlias = Skipped | Unsupported | CoverageResult


def as_legacy(result: Skipped | Unsupported | Any) -> Any:
    """Convert a tagged outcome to the historic ``True``/``False``/value shape.

    Args:
        result: Outcome returned by :func:`flowdiag.collect.collect` or
            :func:`flowdiag.collect.coverage`.

    Returns:
        Any: ``True`` for skipped input, ``False`` for an unsupported
        platform, otherwise a JSON-ready payload.
    """

    if isinstance(result, Skipped):
        return True
    if isinstance(result, Unsupported):
        return False
    if isinstance(result, CoverageResult):
        return result.to_payload()
    return [diagnostic.to_payload() for diagnostic in result]


__all__ = [
    "CheckerEnvelope",
    "CollectResult",
    "Completed",
    "CoverageOutcome",
    "CoverageResult",
    "ExitInfo",
    "FlowError",
    "FlowExtra",
    "FlowLocation",
    "FlowMessage",
    "FlowPosition",
    "InvocationResult",
    "LIB_FILE",
    "Location",
    "NormalizedDiagnostic",
    "Position",
    "RuleType",
    "SOURCE_FILE",
    "Skipped",
    "Unsupported",
    "as_legacy",
]
