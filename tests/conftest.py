# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from helpers.flow import FLOW_BIN, FakeRunner

from flowdiag.collect import FlowChecker


@pytest.fixture(autouse=True)
def registered_exit_hooks(monkeypatch: pytest.MonkeyPatch) -> list[Any]:
    """Keep scheduled ``flow stop`` hooks out of the real interpreter shutdown."""
    registered: list[Any] = []
    monkeypatch.setattr("flowdiag.process.atexit.register", registered.append)
    return registered


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def checker(fake_runner: FakeRunner) -> FlowChecker:
    return FlowChecker(binary=FLOW_BIN, runner=fake_runner)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    return root
