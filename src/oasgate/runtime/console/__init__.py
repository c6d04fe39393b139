# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console helpers backed by Rich."""

from .manager import detect_tty, get_console

__all__ = ["detect_tty", "get_console"]
