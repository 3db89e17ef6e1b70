# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support."""

from __future__ import annotations

import sys
from functools import cache
from typing import Final, NamedTuple

from rich.console import Console
from rich.text import Text


def detect_tty() -> bool:
    """Return ``True`` when stderr appears to be backed by a terminal."""
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


@cache
def get_console(*, color: bool, emoji: bool) -> Console:
    """Return a cached stderr console configured for ``color`` and ``emoji``."""
    tty = detect_tty()
    return Console(
        stderr=True,
        color_system="auto" if color and tty else None,
        no_color=not (color and tty),
        emoji=emoji,
        soft_wrap=True,
    )


def emoji(symbol: str, enable: bool) -> str:
    """Select an emoji symbol based on the caller's preference.

    Args:
        symbol: Emoji text to include in the output.
        enable: Flag indicating whether emoji output is desired.

    Returns:
        str: Emoji symbol when enabled, otherwise an empty string.
    """

    return symbol if enable else ""


class _Tone(NamedTuple):
    symbol: str
    style: str


_INFO: Final[_Tone] = _Tone("ℹ️ ", "cyan")
_OK: Final[_Tone] = _Tone("✅ ", "green")
_WARN: Final[_Tone] = _Tone("⚠️ ", "yellow")
_FAIL: Final[_Tone] = _Tone("❌ ", "red")


def _announce(tone: _Tone, msg: str, *, use_emoji: bool, use_color: bool | None) -> None:
    color_enabled = detect_tty() if use_color is None else use_color
    console = get_console(color=color_enabled, emoji=use_emoji)
    # Text keeps Flow's ``[N]`` references from being read as rich markup.
    text = Text(f"{emoji(tone.symbol, use_emoji)}{msg}")
    if color_enabled:
        text.stylize(tone.style)
    console.print(text)


def info(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Report progress that needs no action, such as a skipped empty file.

    Args:
        msg: Message text, printed verbatim.
        use_emoji: Prefix the message with an information emoji.
        use_color: Force colour on or off; ``None`` follows the terminal.
    """

    _announce(_INFO, msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Report a clean check or a coverage figure that meets its threshold.

    Args:
        msg: Message text, printed verbatim.
        use_emoji: Prefix the message with a check mark.
        use_color: Force colour on or off; ``None`` follows the terminal.
    """

    _announce(_OK, msg, use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Report a result that does not fail the run, such as warning-only diagnostics.

    Args:
        msg: Message text, printed verbatim.
        use_emoji: Prefix the message with a warning sign.
        use_color: Force colour on or off; ``None`` follows the terminal.
    """

    _announce(_WARN, msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Report a failing run: Flow errors, low coverage or a missing binary.

    Args:
        msg: Message text, printed verbatim.
        use_emoji: Prefix the message with a cross mark.
        use_color: Force colour on or off; ``None`` follows the terminal.
    """

    _announce(_FAIL, msg, use_emoji=use_emoji, use_color=use_color)


__all__ = ["detect_tty", "emoji", "fail", "get_console", "info", "ok", "warn"]
