# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate the Flow checker executable."""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Final

from .config import FlowSettings
from .errors import FlowBinaryNotFoundError

_FLOW_EXECUTABLE: Final[str] = "flow"
_NODE_BIN_DIR: Final[tuple[str, str]] = ("node_modules", ".bin")


def _iter_ancestors(start: Path) -> Iterable[Path]:
    current = start
    while True:
        yield current
        if current.parent == current:
            return
        current = current.parent


def find_local_flow(start: Path) -> Path | None:
    """Return the nearest ``node_modules/.bin/flow`` at or above ``start``."""
    for directory in _iter_ancestors(start.resolve()):
        candidate = directory.joinpath(*_NODE_BIN_DIR, _FLOW_EXECUTABLE)
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
    return None


def resolve_flow_binary(settings: FlowSettings, search_from: Path | None = None) -> str:
    """Resolve the Flow executable to invoke.

    The configured override wins, then a ``flow-bin`` install found in a
    ``node_modules`` directory above ``search_from``, then ``flow`` on ``PATH``.

    Args:
        settings: Loaded settings carrying the optional override.
        search_from: Directory to start the ``node_modules`` search from.

    Returns:
        str: Path of the executable.

    Raises:
        FlowBinaryNotFoundError: When no candidate exists.
    """

    if settings.flow_bin is not None:
        return str(settings.flow_bin)

    searched: list[str] = []
    start = search_from if search_from is not None else Path.cwd()
    local = find_local_flow(start)
    if local is not None:
        return str(local)
    searched.append(f"node_modules/.bin above {start}")

    on_path = shutil.which(_FLOW_EXECUTABLE)
    if on_path is not None:
        return on_path
    searched.append("PATH")
    raise FlowBinaryNotFoundError(tuple(searched))


__all__ = ["find_local_flow", "resolve_flow_binary"]
