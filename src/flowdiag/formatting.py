# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Helpers resolving ``[N]`` cross references inside Flow messages."""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import partial
from pathlib import PureWindowsPath
from typing import Final

from .models import FlowMessage, RuleType

_REFERENCE_PATTERN: Final[re.Pattern[str]] = re.compile(r" (\[\d+\])")
_LIB_URL_TEMPLATE: Final[str] = "https://github.com/facebook/flow/blob/v{version}/lib/{name}#L{line}"
_MISSING_ANNOTATION: Final[str] = "missing type annotation"


def format_see_path(message: FlowMessage, root: str, flow_version: str) -> str:
    """Return a reference to ``message`` suitable for a ``(see ...)`` suffix.

    Library definitions point at the Flow repository pinned to ``flow_version``;
    everything else becomes a root-relative path with forward slashes.
    """

    if message.loc is not None and message.loc.is_lib_file:
        # PureWindowsPath splits on both separators.
        name = PureWindowsPath(message.path).name
        return _LIB_URL_TEMPLATE.format(version=flow_version, name=name, line=message.line)
    relative = message.path.replace(root, "", 1).replace("\\", "/")
    return f".{relative}:{message.line}"


def format_message(
    message: FlowMessage,
    extras: Sequence[FlowMessage],
    root: str,
    flow_version: str,
    line_offset: int,
) -> str:
    """Replace each `` [N]`` token in ``message.descr`` with a readable reference.

    Args:
        message: Primary message whose description is rewritten.
        extras: First message of every extra attached to the error.
        root: Project root passed to Flow.
        flow_version: Version reported by Flow, used for library links.
        line_offset: Line offset of the checked snippet in its document.

    Returns:
        str: Description with every resolvable token substituted.
    """

    resolver = partial(
        _resolve_reference,
        message=message,
        extras=extras,
        root=root,
        flow_version=flow_version,
        line_offset=line_offset,
    )
    return _REFERENCE_PATTERN.sub(resolver, message.descr)


def _resolve_reference(
    match: re.Match[str],
    *,
    message: FlowMessage,
    extras: Sequence[FlowMessage],
    root: str,
    flow_version: str,
    line_offset: int,
) -> str:
    token = match.group(1)
    extra = next((candidate for candidate in extras if candidate.descr == token), None)
    if extra is None:
        return match.group(0)
    if extra.path != message.path:
        return f" (see {format_see_path(extra, root, flow_version)})"
    if extra.line == message.line:
        # same line as the primary message, nothing to point at
        return ""
    return f" (see line {line_offset + extra.line})"


def determine_rule_type(description: str) -> RuleType:
    """Classify a message for the host's per-rule toggles."""
    return "missing-annotation" if _MISSING_ANNOTATION in description.lower() else "default"


__all__ = ["determine_rule_type", "format_message", "format_see_path"]
