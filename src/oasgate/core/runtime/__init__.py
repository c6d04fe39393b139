# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Runtime helpers for executing external tools."""

from .process import (
    CommandOptions,
    ProcessResult,
    ProcessRunner,
    SubprocessExecutionError,
    ensure_executable,
    run_command,
)

__all__ = [
    "CommandOptions",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessExecutionError",
    "ensure_executable",
    "run_command",
]
