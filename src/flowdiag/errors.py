# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared across flowdiag."""

from __future__ import annotations

from typing import Final

INSTALL_GUIDANCE: Final[str] = "\n".join(
    (
        "",
        "Oops! Something went wrong! :(",
        "",
        'flowdiag could not find the "flow" binary. This can happen for a couple different reasons.',
        "",
        '1. If flow is installed globally, make sure the "flow" executable is on your PATH.',
        "",
        '2. If flow is installed locally, then it\'s likely that "flow-bin" is not installed correctly. '
        "Try reinstalling by running the following:",
        "",
        "  npm i -D flow-bin@latest",
        "",
        "You can also point FLOW_BIN at the checker executable.",
        "",
    )
)


class FlowDiagError(RuntimeError):
    """Base class for errors raised by flowdiag."""


class ConfigError(FlowDiagError):
    """Raised when the flowdiag configuration cannot be loaded."""


class FlowBinaryNotFoundError(FlowDiagError):
    """Raised when no Flow checker executable can be located."""

    def __init__(self, searched: tuple[str, ...] = ()) -> None:
        """Initialise the error with the candidate locations that were searched.

        Args:
            searched: Human-readable descriptions of the searched locations.
        """

        super().__init__(INSTALL_GUIDANCE)
        self.searched = searched


__all__ = ["ConfigError", "FlowBinaryNotFoundError", "FlowDiagError", "INSTALL_GUIDANCE"]
