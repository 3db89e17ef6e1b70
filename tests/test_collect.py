# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for collecting normalised diagnostics and coverage from Flow."""

from __future__ import annotations

import importlib
import json
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType

import pytest
from helpers.flow import FLOW_BIN, FakeRunner, envelope, flow_error, flow_message

from flowdiag.collect import FlowChecker, ProgramOffset, shift_location
from flowdiag.models import CoverageResult, FlowLocation, NormalizedDiagnostic, Skipped, Unsupported, as_legacy
from flowdiag.severity import Severity


def _collect(checker: FlowChecker, project: Path, offset: object = ProgramOffset()) -> list[NormalizedDiagnostic]:
    result = checker.collect("var x = 1", str(project), False, "src/app.js", offset)
    assert isinstance(result, list)
    return result


def test_empty_source_is_skipped(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    result = checker.collect("", str(project), True, "src/app.js", ProgramOffset())

    assert isinstance(result, Skipped)
    assert as_legacy(result) is True
    assert fake_runner.calls == []


def test_no_output_is_unsupported(checker: FlowChecker, project: Path) -> None:
    result = checker.collect("var x = 1", str(project), False, "src/app.js", ProgramOffset())

    assert isinstance(result, Unsupported)
    assert as_legacy(result) is False


def test_invalid_json_yields_fatal_diagnostic(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    fake_runner.stdout = "not json"

    result = checker.collect("var x = 1", str(project), False, "src/app.js", ProgramOffset())

    assert as_legacy(result) == [
        {
            "level": "error",
            "message": "Flow returned invalid json",
            "loc": {"start": {"line": 1, "column": 1}, "end": {"line": 1, "column": 1}},
        }
    ]


def test_exit_info_yields_fatal_diagnostic(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    fake_runner.stdout = json.dumps({"exit": {"code": 6, "msg": "Lost connection"}})

    [fatal] = _collect(checker, project)

    assert fatal.message == "Flow returned an error: Lost connection (code: 6)"
    assert fatal.severity is Severity.ERROR
    assert fatal.category is None


def test_empty_errors_is_empty_list(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    fake_runner.stdout = envelope()

    assert _collect(checker, project) == []


def test_missing_annotation_scenario(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    path = str(project / "src" / "app.js")
    fake_runner.stdout = envelope(flow_error(flow_message("missing type annotation for x", path=path, line=1)))

    [diagnostic] = _collect(checker, project, {"line": 5, "column": 0})

    assert diagnostic.category == "missing-annotation"
    assert diagnostic.start_line == 6
    assert diagnostic.end_line == 6
    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.path == path


def test_filters_to_target_file(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    other = str(project / "src" / "other.js")
    fake_runner.stdout = envelope(
        flow_error(flow_message("kept", path=mine)),
        flow_error(flow_message("other file", path=other)),
        flow_error(flow_message("no location", path=mine, with_loc=False)),
        flow_error(flow_message("", path=mine)),
        flow_error(flow_message("inconsistent use of library definitions", path=mine)),
    )

    assert [diagnostic.message for diagnostic in _collect(checker, project)] == ["kept"]


def test_unreadable_foreign_error_keeps_the_rest(
    checker: FlowChecker, fake_runner: FakeRunner, project: Path
) -> None:
    mine = str(project / "src" / "app.js")
    foreign = flow_error(flow_message("from a builtin", path=""))
    foreign["message"][0]["loc"].update({"source": None, "type": None})
    broken = flow_error(flow_message("half written", path=mine))
    broken["message"][0]["loc"]["end"] = None
    fake_runner.stdout = envelope(flow_error(flow_message("real error", path=mine)), foreign, broken)

    assert [diagnostic.message for diagnostic in _collect(checker, project)] == ["real error"]


def test_relative_sources_resolve_against_root(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    fake_runner.stdout = envelope(flow_error(flow_message("relative", path="src/app.js")))

    [diagnostic] = _collect(checker, project)

    assert diagnostic.message == "relative"


def test_operation_location_decides_the_file(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    other = str(project / "src" / "other.js")
    kept = flow_error(flow_message("called from here", path=other), operation=flow_message("call", path=mine))
    dropped = flow_error(flow_message("defined here", path=mine), operation=flow_message("call", path=other))
    fake_runner.stdout = envelope(kept, dropped)

    [diagnostic] = _collect(checker, project)

    assert diagnostic.message == "called from here"
    assert diagnostic.path == other


def test_order_follows_flow_output(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    fake_runner.stdout = envelope(
        flow_error(flow_message("second", path=mine, line=9)),
        flow_error(flow_message("first", path=mine, line=2)),
    )

    assert [diagnostic.message for diagnostic in _collect(checker, project)] == ["second", "first"]


def test_column_offset_only_applies_to_line_zero(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    fake_runner.stdout = envelope(
        flow_error(flow_message("spans", path=mine, line=0, column=3, end_line=2, end_column=7)),
    )

    [diagnostic] = _collect(checker, project, ProgramOffset(line=10, column=4))

    start = diagnostic.location.start
    end = diagnostic.location.end
    assert (start.line, start.column) == (10, 7)
    assert (end.line, end.column) == (12, 7)
    assert start.offset == 0


def test_warning_level_is_kept(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    error = flow_error(flow_message("Unused suppression", path=mine))
    error["level"] = "warning"
    fake_runner.stdout = envelope(error)

    [diagnostic] = _collect(checker, project)

    assert diagnostic.severity is Severity.WARNING
    assert diagnostic.to_payload()["level"] == "warning"


def test_missing_level_defaults_to_error(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    error = flow_error(flow_message("oops", path=mine))
    del error["level"]
    fake_runner.stdout = envelope(error)

    [diagnostic] = _collect(checker, project)

    assert diagnostic.severity is Severity.ERROR


def test_extras_are_resolved(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    types = str(project / "src" / "types.js")
    error = flow_error(
        flow_message("string [1] is incompatible with number [2]", path=mine, line=4),
        extra=[
            {"message": [flow_message("[1]", path=mine, line=4)]},
            {"message": [flow_message("[2]", path=types, line=11)]},
            {"message": []},
        ],
    )
    fake_runner.stdout = envelope(error)

    [diagnostic] = _collect(checker, project, ProgramOffset(line=3))

    assert diagnostic.message == "string is incompatible with number (see ./src/types.js:11)"


def test_payload_shape(checker: FlowChecker, fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    fake_runner.stdout = envelope(flow_error(flow_message("Cannot call `foo`", path=mine, line=2, column=5)))

    [diagnostic] = _collect(checker, project, ProgramOffset(line=1))

    assert diagnostic.to_payload() == {
        "type": "default",
        "level": "error",
        "message": "Cannot call `foo`",
        "path": mine,
        "start": 3,
        "end": 3,
        "loc": {
            "start": {"line": 3, "column": 5, "offset": 0},
            "end": {"line": 3, "column": 9, "offset": 4},
        },
    }


def test_debug_merges_raw_envelope(fake_runner: FakeRunner, project: Path) -> None:
    mine = str(project / "src" / "app.js")
    fake_runner.stdout = envelope(flow_error(flow_message("oops", path=mine)))
    checker = FlowChecker(binary=FLOW_BIN, runner=fake_runner, debug=True)

    [diagnostic] = _collect(checker, project)
    payload = diagnostic.to_payload()

    assert payload["flowVersion"] == "0.100.0"
    assert payload["errors"][0]["message"][0]["descr"] == "oops"
    assert payload["message"] == "oops"


def test_stop_on_exit_is_scheduled_per_root(checker: FlowChecker, fake_runner: FakeRunner, tmp_path: Path) -> None:
    fake_runner.stdout = envelope()

    checker.collect("x", str(tmp_path / "a"), True, "a.js", ProgramOffset())
    checker.collect("x", str(tmp_path / "b"), True, "b.js", ProgramOffset())
    checker.collect("x", str(tmp_path / "c"), False, "c.js", ProgramOffset())

    assert checker.registry is not None
    assert checker.registry.roots == (str(tmp_path / "a"), str(tmp_path / "b"))


def test_shift_location_defaults() -> None:
    location = shift_location(None, ProgramOffset(line=2, column=9))

    assert (location.start.line, location.start.column, location.start.offset) == (3, 1, 0)


def test_shift_location_keeps_offsets() -> None:
    loc = FlowLocation.model_validate(
        {"source": "a.js", "type": "SourceFile", "start": {"line": 0, "column": 1}, "end": {"line": 0, "column": 2}}
    )

    location = shift_location(loc, ProgramOffset(line=0, column=5))

    assert (location.start.column, location.end.column) == (6, 7)
    assert location.start.offset is None


@pytest.mark.parametrize(
    ("stdout", "expected"),
    [
        ('{"expressions": {"covered_count": 7, "uncovered_count": 3}}', CoverageResult(covered_count=7, uncovered_count=3)),
        ("not json", CoverageResult()),
        ('{"other": 1}', CoverageResult()),
        ('{"expressions": {"covered_count": "7"}}', CoverageResult()),
        ("[]", CoverageResult()),
    ],
)
def test_coverage(checker: FlowChecker, fake_runner: FakeRunner, stdout: str, expected: CoverageResult) -> None:
    fake_runner.stdout = stdout

    result = checker.coverage("var x = 1", "/root", False, "a.js")

    assert result == expected
    [(args, _)] = fake_runner.calls
    assert args[1] == "coverage"


def test_coverage_passes_sentinels_through(checker: FlowChecker, fake_runner: FakeRunner) -> None:
    assert isinstance(checker.coverage("", "/root", False, "a.js"), Skipped)
    assert isinstance(checker.coverage("x", "/root", False, "a.js"), Unsupported)
    assert len(fake_runner.calls) == 1


def test_coverage_legacy_payload() -> None:
    result = CoverageResult(covered_count=3, uncovered_count=1)

    assert as_legacy(result) == {"coveredCount": 3, "uncoveredCount": 1}
    assert result.percent == 75.0
    assert CoverageResult().percent == 100.0


@pytest.fixture
def shared_checkers() -> Iterator[ModuleType]:
    # The package re-exports a ``collect`` function under the submodule name.
    collect_module = importlib.import_module("flowdiag.collect")
    collect_module._checker_for_binary.cache_clear()
    yield collect_module
    collect_module._checker_for_binary.cache_clear()


def test_module_level_helpers_use_environment(
    shared_checkers: ModuleType, monkeypatch: pytest.MonkeyPatch, project: Path
) -> None:
    monkeypatch.setenv("FLOW_BIN", "/env/flow")

    assert shared_checkers.default_checker().binary == "/env/flow"
    assert isinstance(shared_checkers.collect("", str(project), False, "a.js"), Skipped)
    assert isinstance(shared_checkers.coverage("", str(project), False, "a.js"), Skipped)


def test_default_checker_reads_debug_on_every_call(
    shared_checkers: ModuleType, monkeypatch: pytest.MonkeyPatch, project: Path
) -> None:
    monkeypatch.setenv("FLOW_BIN", "/env/flow")
    monkeypatch.delenv("DEBUG_FLOWTYPE_ERRORS", raising=False)
    monkeypatch.delenv("DEBUG_FLOWTYPE_ERRRORS", raising=False)
    plain = shared_checkers.default_checker(project)

    monkeypatch.setenv("DEBUG_FLOWTYPE_ERRRORS", "true")
    debugging = shared_checkers.default_checker(project)

    assert not plain.debug
    assert debugging.debug
    assert debugging.registry is plain.registry


def test_default_checker_reads_project_table(
    shared_checkers: ModuleType, monkeypatch: pytest.MonkeyPatch, project: Path
) -> None:
    monkeypatch.delenv("FLOW_BIN", raising=False)
    monkeypatch.delenv("DEBUG_FLOWTYPE_ERRORS", raising=False)
    monkeypatch.delenv("DEBUG_FLOWTYPE_ERRRORS", raising=False)
    (project / "pyproject.toml").write_text(
        '[tool.flowdiag]\nflow-bin = "/project/flow"\ndebug = true\n', encoding="utf-8"
    )

    checker = shared_checkers.default_checker(str(project))

    assert checker.binary == str(Path("/project/flow"))
    assert checker.debug
