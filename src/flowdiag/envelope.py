# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Validate-then-decode step turning checker stdout into a tagged result."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, TypeAlias

from pydantic import ValidationError

from .models import CheckerEnvelope, FlowError, Location, NormalizedDiagnostic
from .severity import Severity

LOGGER = logging.getLogger(__name__)

INVALID_JSON_MESSAGE: Final[str] = "Flow returned invalid json"
_ERRORS_KEY: Final[str] = "errors"
_EXIT_KEY: Final[str] = "exit"


@dataclass(frozen=True, slots=True)
class EnvelopeOk:
    """Structurally valid envelope together with the decoded JSON document."""

    envelope: CheckerEnvelope
    document: dict[str, Any]


@dataclass(frozen=True, slots=True)
class MalformedEnvelope:
    """Stdout was not JSON or did not carry an ``errors`` array."""

    detail: str


@dataclass(frozen=True, slots=True)
class ExitError:
    """Flow reported an exit status instead of errors."""

    msg: str
    code: object

    @property
    def message(self) -> str:
        return f"Flow returned an error: {self.msg} (code: {self.code})"


EnvelopeResult: TypeAlias = EnvelopeOk | MalformedEnvelope | ExitError


def decode_envelope(stdout: str) -> EnvelopeResult:
    """Decode ``stdout`` produced by ``flow check-contents --json``.

    Args:
        stdout: Raw text captured from the checker.

    Returns:
        EnvelopeResult: ``EnvelopeOk`` when the document matches the expected
        shape, ``ExitError`` when Flow reported an exit status without errors,
        and ``MalformedEnvelope`` for everything else. Entries of ``errors``
        that fail validation are dropped; the others are kept.
    """

    try:
        document = json.loads(stdout)
    except json.JSONDecodeError as exc:
        LOGGER.debug("flow stdout is not valid JSON: %s", exc)
        return MalformedEnvelope(detail=f"invalid json: {exc.msg}")
    if not isinstance(document, dict):
        return MalformedEnvelope(detail="top-level JSON value is not an object")

    errors = document.get(_ERRORS_KEY)
    if not isinstance(errors, list):
        exit_info = document.get(_EXIT_KEY)
        if exit_info:
            return _exit_error(exit_info)
        return MalformedEnvelope(detail="missing errors array")

    try:
        envelope = CheckerEnvelope.model_validate({**document, _ERRORS_KEY: _validate_errors(errors)})
    except ValidationError as exc:
        LOGGER.debug("flow envelope failed validation: %s", exc)
        return MalformedEnvelope(detail=f"unexpected envelope shape ({exc.error_count()} problem(s))")
    return EnvelopeOk(envelope=envelope, document=document)


def _validate_errors(entries: list[Any]) -> list[FlowError]:
    # An unreadable entry only costs that entry; the rest of the run is kept.
    validated: list[FlowError] = []
    for index, entry in enumerate(entries):
        try:
            validated.append(FlowError.model_validate(entry))
        except ValidationError as exc:
            LOGGER.debug("dropping unreadable flow error #%d: %s", index, exc)
    return validated


def _exit_error(exit_info: object) -> ExitError:
    if isinstance(exit_info, Mapping):
        return ExitError(msg=str(exit_info.get("msg", "")), code=exit_info.get("code"))
    return ExitError(msg=str(exit_info), code=None)


def fatal_diagnostic(message: str) -> NormalizedDiagnostic:
    """Return the single error diagnostic used to surface unusable checker output."""
    return NormalizedDiagnostic(severity=Severity.ERROR, message=message, location=Location.degenerate())


def fatal_for(result: MalformedEnvelope | ExitError) -> list[NormalizedDiagnostic]:
    """Translate a failed decode into the list reported to the host."""
    if isinstance(result, ExitError):
        return [fatal_diagnostic(result.message)]
    return [fatal_diagnostic(INVALID_JSON_MESSAGE)]


__all__ = [
    "EnvelopeOk",
    "EnvelopeResult",
    "ExitError",
    "INVALID_JSON_MESSAGE",
    "MalformedEnvelope",
    "decode_envelope",
    "fatal_diagnostic",
    "fatal_for",
]
