# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the cancellation and timeout envelope."""

from __future__ import annotations

import pytest

from oasgate.core.cancellation import CancellationSource, CancellationToken
from oasgate.logging import BuildLogger, MemorySink, Severity
from oasgate.orchestration.envelope import run_with_timeout


def test_returns_operation_result(build_logger: BuildLogger) -> None:
    user = CancellationSource()

    assert run_with_timeout(lambda token: True, user_token=user.token, logger=build_logger)
    assert not run_with_timeout(lambda token: False, user_token=user.token, logger=build_logger)


def test_user_cancellation_is_silent(memory_sink: MemorySink) -> None:
    user = CancellationSource()

    def operation(token: CancellationToken) -> bool:
        user.cancel()
        token.raise_if_cancelled()
        return True

    assert not run_with_timeout(operation, user_token=user.token, logger=BuildLogger(memory_sink))
    assert memory_sink.records == []


def test_timeout_is_logged(memory_sink: MemorySink) -> None:
    def operation(token: CancellationToken) -> bool:
        assert token.wait(5.0)
        token.raise_if_cancelled()
        return True

    result = run_with_timeout(
        operation,
        user_token=CancellationSource().token,
        timeout=0.05,
        logger=BuildLogger(memory_sink),
    )

    assert result is False
    assert len(memory_sink.messages(Severity.ERROR)) == 1


def test_other_errors_propagate(build_logger: BuildLogger) -> None:
    def operation(token: CancellationToken) -> bool:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        run_with_timeout(operation, user_token=CancellationSource().token, logger=build_logger)
