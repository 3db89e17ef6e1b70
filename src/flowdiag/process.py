# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Blocking wrappers around Flow subprocess execution."""

from __future__ import annotations

import atexit
import logging
import shutil

# Bandit: subprocess usage is intentional, arguments are always passed as a
# list and ``shell=True`` is never used.
import subprocess  # nosec B404
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from subprocess import CompletedProcess
from threading import Lock
from typing import Final

from .models import Completed, InvocationResult, Skipped, Unsupported

LOGGER = logging.getLogger(__name__)

CHECK_CONTENTS_MODE: Final[str] = "check-contents"
COVERAGE_MODE: Final[str] = "coverage"
STOP_MODE: Final[str] = "stop"
_JSON_FLAG: Final[str] = "--json"


@dataclass(frozen=True, slots=True)
class CommandOptions:
    """Immutable command execution options."""

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    input: str | None = None
    timeout: float | None = None


CommandRunner = Callable[[Sequence[str], CommandOptions], CompletedProcess[str]]


def _normalize_args(args: Sequence[str]) -> list[str]:
    """Normalise the subprocess argument sequence.

    Args:
        args: Raw command arguments supplied by the caller.

    Returns:
        list[str]: Argument list whose executable is an absolute path.

    Raises:
        ValueError: If no arguments are provided.
        FileNotFoundError: If the executable cannot be found on ``PATH``.
    """

    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def run_command(args: Sequence[str], options: CommandOptions | None = None) -> CompletedProcess[str]:
    """Execute ``args`` and wait for it to finish, capturing text output.

    The exit status is not checked: Flow exits non-zero whenever it reports
    errors, so callers inspect stdout instead.

    Args:
        args: Command and argument sequence to execute.
        options: Execution options; stdin is closed when no input is given.

    Returns:
        CompletedProcess: Subprocess execution metadata.
    """

    normalized = _normalize_args(args)
    resolved = options or CommandOptions()
    # Bandit: the command is built from the resolved Flow binary and fixed flags.
    return subprocess.run(  # nosec B603
        normalized,
        cwd=str(resolved.cwd) if resolved.cwd is not None else None,
        env=dict(resolved.env) if resolved.env is not None else None,
        input=resolved.input,
        stdin=subprocess.DEVNULL if resolved.input is None else None,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=resolved.timeout,
        check=False,
    )


@dataclass(slots=True)
class StopRegistry:
    """Track which Flow roots should have their server stopped at interpreter exit.

    Each distinct root is scheduled at most once and gets its own ``flow stop``
    call. The check-and-set runs under a lock so concurrent callers cannot
    schedule the same root twice.
    """

    binary: str
    runner: CommandRunner = run_command
    _scheduled: dict[str, bool] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)
    _hook_installed: bool = False

    def schedule(self, root: str) -> bool:
        """Schedule ``flow stop root`` for interpreter exit.

        Returns:
            bool: ``True`` when this call scheduled the root, ``False`` when it
            was already scheduled.
        """

        with self._lock:
            if self._scheduled.get(root):
                return False
            self._scheduled[root] = True
            if not self._hook_installed:
                atexit.register(self.stop_all)
                self._hook_installed = True
        LOGGER.debug("scheduled flow server stop for %s", root)
        return True

    def is_scheduled(self, root: str) -> bool:
        with self._lock:
            return self._scheduled.get(root, False)

    @property
    def roots(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(root for root, scheduled in self._scheduled.items() if scheduled)

    def stop_all(self) -> None:
        """Stop the Flow server of every scheduled root, synchronously."""
        with self._lock:
            roots = [root for root, scheduled in self._scheduled.items() if scheduled]
            for root in roots:
                self._scheduled[root] = False
        for root in roots:
            try:
                self.runner([self.binary, STOP_MODE, root], CommandOptions())
            except OSError as exc:
                LOGGER.debug("failed to stop flow server for %s: %s", root, exc)


@dataclass(slots=True)
class FlowInvoker:
    """Run the Flow binary in a given mode against piped source text."""

    binary: str
    registry: StopRegistry
    runner: CommandRunner = run_command

    def invoke(
        self,
        mode: str,
        source: str,
        root: str,
        stop_on_exit: bool,
        filepath: str,
    ) -> InvocationResult:
        """Run ``flow <mode> --json --root=<root> <filepath>`` with ``source`` on stdin.

        Args:
            mode: Flow sub-command, e.g. ``check-contents`` or ``coverage``.
            source: Text piped to the checker.
            root: Project root handed to Flow.
            stop_on_exit: Schedule ``flow stop`` for ``root`` at interpreter exit.
            filepath: Path Flow reports the piped text under.

        Returns:
            InvocationResult: ``Skipped`` for empty input, ``Unsupported`` when
            the checker produced no output, otherwise ``Completed``.
        """

        if not source:
            return Skipped()

        args = [self.binary, mode, _JSON_FLAG, f"--root={root}", filepath]
        try:
            completed = self.runner(args, CommandOptions(input=source))
        except OSError as exc:
            LOGGER.warning("unable to run flow: %s", exc)
            return Unsupported(reason=str(exc))

        stdout = completed.stdout
        if not stdout:
            # Flow has no builds for some platforms (e.g. 32 bit) and prints nothing.
            LOGGER.debug("flow %s produced no stdout (exit %s)", mode, completed.returncode)
            return Unsupported()

        if stop_on_exit:
            self.registry.schedule(root)

        return Completed(stdout=stdout)


__all__ = [
    "CHECK_CONTENTS_MODE",
    "COVERAGE_MODE",
    "CommandOptions",
    "CommandRunner",
    "FlowInvoker",
    "STOP_MODE",
    "StopRegistry",
    "run_command",
]
