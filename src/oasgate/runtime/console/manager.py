# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared Rich consoles for build output."""

from __future__ import annotations

import sys
from functools import lru_cache

from rich.console import Console


def detect_tty() -> bool:
    """Return ``True`` when stdout is attached to a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def get_console(*, color: bool, emoji: bool) -> Console:
    """Return the console for ``color``/``emoji``, colouring only on a terminal."""

    return _console(color and detect_tty(), emoji)


@lru_cache(maxsize=4)
def _console(color: bool, emoji: bool) -> Console:
    return Console(
        color_system="auto" if color else None,
        force_terminal=color or None,
        no_color=not color,
        emoji=emoji,
        soft_wrap=True,
        highlight=False,
    )


__all__ = ["detect_tty", "get_console"]
