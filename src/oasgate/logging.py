# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers and the build log sink used by the orchestrator."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from rich.rule import Rule
from rich.text import Text

from .runtime.console.manager import detect_tty, get_console


class Severity(str, Enum):
    """Severity attached to every build log record."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LogRecord:
    """Single message emitted while orchestrating a build."""

    message: str
    severity: Severity = Severity.INFO


LogSink = Callable[[LogRecord], None]


def promote_warnings(record: LogRecord, *, treat_warnings_as_errors: bool) -> LogRecord:
    """Return ``record`` with warnings promoted to errors when requested.

    Args:
        record: Record about to reach the sink.
        treat_warnings_as_errors: Whether warnings fail the build.

    Returns:
        LogRecord: The original record or an error-severity copy.
    """

    if treat_warnings_as_errors and record.severity is Severity.WARNING:
        return replace(record, severity=Severity.ERROR)
    return record


def emoji(symbol: str, enable: bool) -> str:
    """Select an emoji symbol based on the caller's preference.

    Args:
        symbol: Emoji text to include in the output.
        enable: Flag indicating whether emoji output is desired.

    Returns:
        str: Emoji symbol when enabled, otherwise an empty string.
    """

    return symbol if enable else ""


def _print_line(
    msg: str,
    *,
    style: str | None,
    use_emoji: bool,
    use_color: bool | None = None,
) -> None:
    """Render ``msg`` to the console using shared styling helpers.

    Args:
        msg: Message text to print to the console.
        style: Rich style name to apply when colour output is active.
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
    """

    color_enabled = detect_tty() if use_color is None else use_color
    console = get_console(color=color_enabled, emoji=use_emoji)
    text = Text(msg)
    if style and color_enabled:
        text.stylize(style)
    console.print(text)


def section(title: str, *, use_color: bool) -> None:
    """Render a section header to delineate console output blocks.

    Args:
        title: Section title displayed to the user.
        use_color: Flag indicating whether ANSI colour support is desired.
    """

    console = get_console(color=use_color, emoji=True)
    if use_color:
        console.print()
        console.print(Rule(title))
    else:
        console.print(f"\n--- {title} ---")


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit an informational message."""

    prefix = emoji("ℹ️ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="cyan", use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit a success message."""

    prefix = emoji("✅ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="green", use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit a warning message."""

    prefix = emoji("⚠️ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="yellow", use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Emit an error message."""

    prefix = emoji("❌ ", use_emoji)
    _print_line(f"{prefix}{msg}", style="red", use_emoji=use_emoji, use_color=use_color)


def console_sink(*, use_emoji: bool = True, use_color: bool | None = None, verbose: bool = False) -> LogSink:
    """Return a sink rendering records through the Rich console helpers.

    Args:
        use_emoji: Flag indicating whether emoji output is desired.
        use_color: Optional explicit colour flag overriding TTY detection.
        verbose: Whether debug records are printed.

    Returns:
        LogSink: Callable accepting :class:`LogRecord` instances.
    """

    def sink(record: LogRecord) -> None:
        if record.severity is Severity.DEBUG:
            if verbose:
                _print_line(record.message, style="dim", use_emoji=use_emoji, use_color=use_color)
            return
        if record.severity is Severity.INFO:
            _print_line(record.message, style=None, use_emoji=use_emoji, use_color=use_color)
        elif record.severity is Severity.WARNING:
            warn(record.message, use_emoji=use_emoji, use_color=use_color)
        else:
            fail(record.message, use_emoji=use_emoji, use_color=use_color)

    return sink


class MemorySink:
    """Sink collecting records in memory."""

    def __init__(self) -> None:
        self.records: list[LogRecord] = []

    def __call__(self, record: LogRecord) -> None:
        self.records.append(record)

    def messages(self, severity: Severity | None = None) -> list[str]:
        """Return recorded messages, optionally filtered by ``severity``."""

        return [record.message for record in self.records if severity is None or record.severity is severity]


class BuildLogger:
    """Route orchestration messages to a sink and track warnings and errors."""

    def __init__(self, sink: LogSink | None = None, *, treat_warnings_as_errors: bool = False) -> None:
        """Create the logger.

        Args:
            sink: Destination for records; defaults to the Rich console sink.
            treat_warnings_as_errors: Promote warnings to errors at the sink boundary.
        """

        self._sink = sink or console_sink()
        self._treat_warnings_as_errors = treat_warnings_as_errors
        self._lock = threading.Lock()
        self._warnings: list[str] = []
        self._errors: list[str] = []

    @property
    def warnings(self) -> tuple[str, ...]:
        """Return every warning logged so far, promoted or not."""

        with self._lock:
            return tuple(self._warnings)

    @property
    def errors(self) -> tuple[str, ...]:
        """Return messages that reached the sink with error severity."""

        with self._lock:
            return tuple(self._errors)

    @property
    def has_errors(self) -> bool:
        """Return ``True`` once any record reached the sink as an error."""

        with self._lock:
            return bool(self._errors)

    def log(self, record: LogRecord) -> None:
        """Forward ``record`` to the sink after applying warning promotion."""

        emitted = promote_warnings(record, treat_warnings_as_errors=self._treat_warnings_as_errors)
        with self._lock:
            if record.severity is Severity.WARNING:
                self._warnings.append(record.message)
            if emitted.severity is Severity.ERROR:
                self._errors.append(emitted.message)
            self._sink(emitted)

    def debug(self, message: str) -> None:
        self.log(LogRecord(message, Severity.DEBUG))

    def info(self, message: str) -> None:
        self.log(LogRecord(message, Severity.INFO))

    def warning(self, message: str) -> None:
        self.log(LogRecord(message, Severity.WARNING))

    def error(self, message: str) -> None:
        self.log(LogRecord(message, Severity.ERROR))


__all__ = [
    "BuildLogger",
    "LogRecord",
    "LogSink",
    "MemorySink",
    "Severity",
    "console_sink",
    "emoji",
    "fail",
    "info",
    "ok",
    "promote_warnings",
    "section",
    "warn",
]
