# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the build logger and its sinks."""

from __future__ import annotations

from oasgate.logging import BuildLogger, LogRecord, MemorySink, Severity, promote_warnings
from oasgate.runtime.console import get_console


def test_promote_warnings_is_pure() -> None:
    record = LogRecord("drift", Severity.WARNING)

    promoted = promote_warnings(record, treat_warnings_as_errors=True)

    assert promoted.severity is Severity.ERROR
    assert record.severity is Severity.WARNING
    assert promote_warnings(record, treat_warnings_as_errors=False) is record


def test_promotion_leaves_other_severities() -> None:
    record = LogRecord("hello")

    assert promote_warnings(record, treat_warnings_as_errors=True) is record


def test_logger_tracks_warnings() -> None:
    sink = MemorySink()
    logger = BuildLogger(sink)

    logger.info("starting")
    logger.warning("violation")

    assert logger.warnings == ("violation",)
    assert not logger.has_errors
    assert sink.messages(Severity.WARNING) == ["violation"]


def test_logger_promotes_at_sink_boundary() -> None:
    sink = MemorySink()
    logger = BuildLogger(sink, treat_warnings_as_errors=True)

    logger.warning("violation")

    assert logger.has_errors
    assert logger.warnings == ("violation",)
    assert sink.records == [LogRecord("violation", Severity.ERROR)]


def test_console_sink_prints(capsys) -> None:
    from oasgate.logging import console_sink

    sink = console_sink(use_emoji=False, use_color=False)
    sink(LogRecord("plain message"))
    sink(LogRecord("hidden", Severity.DEBUG))

    output = capsys.readouterr().out
    assert "plain message" in output
    assert "hidden" not in output


def test_console_is_plain_off_terminal(monkeypatch) -> None:
    monkeypatch.setattr("oasgate.runtime.console.manager.detect_tty", lambda: False)

    console = get_console(color=True, emoji=False)

    assert console is get_console(color=False, emoji=False)
    assert console.no_color
