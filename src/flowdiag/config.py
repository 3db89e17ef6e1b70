# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Settings for flowdiag sourced from defaults, ``pyproject.toml`` and the environment."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

FLOW_BIN_ENV: Final[str] = "FLOW_BIN"
DEBUG_ENV: Final[str] = "DEBUG_FLOWTYPE_ERRORS"
# Spelling used by earlier releases of the ESLint plugin; still honoured.
LEGACY_DEBUG_ENV: Final[str] = "DEBUG_FLOWTYPE_ERRRORS"
PYPROJECT_FILENAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "flowdiag"
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class FlowSettings(BaseModel):
    """Resolved flowdiag settings."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    flow_bin: Path | None = Field(default=None, alias="flow-bin")
    debug: bool = False
    stop_on_exit: bool = Field(default=False, alias="stop-on-exit")
    min_coverage: float | None = Field(default=None, alias="min-coverage", ge=0, le=100)


def _env_flag(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def _load_pyproject_section(root: Path) -> dict[str, Any]:
    path = root / PYPROJECT_FILENAME
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    tool_section = data.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"[tool.{PYPROJECT_SECTION_KEY}] in {path} must be a table")
    return dict(section)


def load_settings(root: Path | None = None, env: Mapping[str, str] | None = None) -> FlowSettings:
    """Load settings for ``root``.

    Values from ``[tool.flowdiag]`` in ``<root>/pyproject.toml`` override the
    defaults; ``FLOW_BIN`` and ``DEBUG_FLOWTYPE_ERRORS`` override both.

    Args:
        root: Project root to read ``pyproject.toml`` from; skipped when ``None``.
        env: Environment mapping, defaults to :data:`os.environ`.

    Returns:
        FlowSettings: Validated settings.

    Raises:
        ConfigError: When the configuration table is unreadable or invalid.
    """

    environ = os.environ if env is None else env
    payload: dict[str, Any] = _load_pyproject_section(root) if root is not None else {}

    flow_bin = environ.get(FLOW_BIN_ENV)
    if flow_bin:
        payload["flow-bin"] = flow_bin
    if _env_flag(environ.get(DEBUG_ENV)) or _env_flag(environ.get(LEGACY_DEBUG_ENV)):
        payload["debug"] = True

    try:
        return FlowSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid flowdiag configuration: {exc}") from exc


__all__ = [
    "DEBUG_ENV",
    "FLOW_BIN_ENV",
    "FlowSettings",
    "LEGACY_DEBUG_ENV",
    "load_settings",
]
