# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run Flow and collect its errors as normalised diagnostics."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from functools import cache
from pathlib import Path
from typing import Any, Final, NamedTuple

from .binary import resolve_flow_binary
from .config import load_settings
from .envelope import EnvelopeOk, decode_envelope, fatal_for
from .formatting import determine_rule_type, format_message
from .models import (
    CheckerEnvelope,
    CollectResult,
    Completed,
    CoverageOutcome,
    CoverageResult,
    FlowError,
    FlowLocation,
    FlowMessage,
    FlowPosition,
    Location,
    NormalizedDiagnostic,
    Position,
)
from .process import (
    CHECK_CONTENTS_MODE,
    COVERAGE_MODE,
    CommandRunner,
    FlowInvoker,
    StopRegistry,
    run_command,
)
from .severity import coerce_severity

LOGGER = logging.getLogger(__name__)

# Flow reports this for library definitions shared across files; it is noise
# for a per-file lint.
_SUPPRESSED_FRAGMENT: Final[str] = "inconsistent use of"
_DEFAULT_POSITION: Final[FlowPosition] = FlowPosition(line=1, column=1, offset=0)
_EXPRESSIONS_KEY: Final[str] = "expressions"


class ProgramOffset(NamedTuple):
    """Position of the checked snippet inside its enclosing document."""

    line: int = 0
    column: int = 0


def _resolve(root: str, path: str) -> Path:
    # Lexical resolution; symlinks are left alone so paths compare as Flow prints them.
    return Path(os.path.abspath(Path(root) / path))


def _coerce_offset(value: ProgramOffset | tuple[int, int] | Mapping[str, int]) -> ProgramOffset:
    if isinstance(value, Mapping):
        return ProgramOffset(line=int(value.get("line", 0)), column=int(value.get("column", 0)))
    return ProgramOffset(*value)


def _belongs_to(error: FlowError, root: str, target: Path) -> bool:
    main_loc = error.main_loc
    main_file = main_loc.source if main_loc is not None else None
    descr = error.primary.descr
    return bool(
        main_file
        and descr
        and _SUPPRESSED_FRAGMENT not in descr
        and _resolve(root, main_file) == target
    )


def _shift(position: FlowPosition, offset: ProgramOffset) -> Position:
    # Only line 0 shares its line with whatever precedes the snippet.
    column = position.column + offset.column if position.line == 0 else position.column
    return Position(line=position.line + offset.line, column=column, offset=position.offset)


def shift_location(loc: FlowLocation | None, offset: ProgramOffset) -> Location:
    """Translate a Flow location into document coordinates."""
    start = loc.start if loc is not None else _DEFAULT_POSITION
    end = loc.end if loc is not None else _DEFAULT_POSITION
    return Location(start=_shift(start, offset), end=_shift(end, offset))


def _first_extra_messages(error: FlowError) -> list[FlowMessage]:
    return [extra.message[0] for extra in error.extra or () if extra.message]


@dataclass(slots=True)
class FlowChecker:
    """Long-lived coordinator running Flow for a linting host.

    The checker owns the :class:`StopRegistry`, so every root that asked for
    ``stop_on_exit`` gets its own ``flow stop`` when the interpreter exits.
    """

    binary: str
    debug: bool = False
    runner: CommandRunner = run_command
    registry: StopRegistry | None = None
    _invoker: FlowInvoker = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.registry is None:
            self.registry = StopRegistry(binary=self.binary, runner=self.runner)
        self._invoker = FlowInvoker(binary=self.binary, registry=self.registry, runner=self.runner)

    def collect(
        self,
        stdin: str,
        root: str,
        stop_on_exit: bool,
        filepath: str,
        program_offset: ProgramOffset | tuple[int, int] | Mapping[str, int] = ProgramOffset(),
    ) -> CollectResult:
        """Check ``stdin`` as the contents of ``filepath`` and return its diagnostics.

        Args:
            stdin: Source text to check.
            root: Flow project root.
            stop_on_exit: Stop the Flow server for ``root`` when the interpreter exits.
            filepath: File the text belongs to, absolute or relative to ``root``.
            program_offset: Line/column of the snippet inside its document.

        Returns:
            CollectResult: ``Skipped``/``Unsupported`` passed through from the
            invoker, otherwise diagnostics for ``filepath`` in Flow's order. A
            malformed result yields a single fatal diagnostic.
        """

        offset = _coerce_offset(program_offset)
        outcome = self._invoker.invoke(CHECK_CONTENTS_MODE, stdin, root, stop_on_exit, filepath)
        if not isinstance(outcome, Completed):
            return outcome

        decoded = decode_envelope(outcome.stdout)
        if not isinstance(decoded, EnvelopeOk):
            return fatal_for(decoded)

        target = _resolve(root, filepath)
        raw = decoded.document if self.debug else None
        return [
            self._normalize(error, decoded.envelope, root, offset, raw)
            for error in decoded.envelope.errors
            if _belongs_to(error, root, target)
        ]

    def _normalize(
        self,
        error: FlowError,
        envelope: CheckerEnvelope,
        root: str,
        offset: ProgramOffset,
        raw: dict[str, Any] | None,
    ) -> NormalizedDiagnostic:
        primary = error.primary
        extras = _first_extra_messages(error)
        if extras:
            message = format_message(primary, extras, root, envelope.flow_version, offset.line)
        else:
            message = primary.descr

        location = shift_location(primary.loc, offset)
        return NormalizedDiagnostic(
            category=determine_rule_type(message),
            severity=coerce_severity(error.level),
            message=message,
            path=primary.path,
            start_line=location.start.line,
            end_line=location.end.line,
            location=location,
            raw=raw,
        )

    def coverage(self, stdin: str, root: str, stop_on_exit: bool, filepath: str) -> CoverageOutcome:
        """Return expression coverage counters for ``stdin``.

        Output that cannot be read degrades to zero counts rather than an error.
        """

        outcome = self._invoker.invoke(COVERAGE_MODE, stdin, root, stop_on_exit, filepath)
        if not isinstance(outcome, Completed):
            return outcome
        try:
            document = json.loads(outcome.stdout)
        except json.JSONDecodeError:
            LOGGER.debug("flow coverage returned invalid json")
            return CoverageResult()
        expressions = document.get(_EXPRESSIONS_KEY) if isinstance(document, Mapping) else None
        if not isinstance(expressions, Mapping):
            return CoverageResult()
        covered = expressions.get("covered_count")
        uncovered = expressions.get("uncovered_count")
        if not isinstance(covered, int) or not isinstance(uncovered, int):
            return CoverageResult()
        return CoverageResult(covered_count=covered, uncovered_count=uncovered)


@cache
def _checker_for_binary(binary: str) -> FlowChecker:
    return FlowChecker(binary=binary)


def default_checker(root: str | Path | None = None) -> FlowChecker:
    """Return the shared checker configured for ``root``.

    Settings are read on every call, so ``[tool.flowdiag]`` in ``root`` and a
    changed ``DEBUG_FLOWTYPE_ERRORS`` take effect immediately. Checkers for the
    same binary share one :class:`StopRegistry`.

    Args:
        root: Project root whose ``pyproject.toml`` and ``node_modules`` are
            consulted; only the environment is read when ``None``.

    Raises:
        FlowBinaryNotFoundError: When no Flow executable can be located.
    """

    search_from = Path(root) if root is not None else None
    settings = load_settings(search_from)
    shared = _checker_for_binary(resolve_flow_binary(settings, search_from=search_from))
    if shared.debug == settings.debug:
        return shared
    return replace(shared, debug=settings.debug)


def collect(
    stdin: str,
    root: str,
    stop_on_exit: bool,
    filepath: str,
    program_offset: ProgramOffset | tuple[int, int] | Mapping[str, int] = ProgramOffset(),
) -> CollectResult:
    """Collect diagnostics using :func:`default_checker` for ``root``."""
    return default_checker(root).collect(stdin, root, stop_on_exit, filepath, program_offset)


def coverage(stdin: str, root: str, stop_on_exit: bool, filepath: str) -> CoverageOutcome:
    """Collect coverage counters using :func:`default_checker` for ``root``."""
    return default_checker(root).coverage(stdin, root, stop_on_exit, filepath)


__all__ = [
    "FlowChecker",
    "ProgramOffset",
    "collect",
    "coverage",
    "default_checker",
    "shift_location",
]
