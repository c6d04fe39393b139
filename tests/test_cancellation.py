# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for cooperative cancellation primitives."""

from __future__ import annotations

import pytest

from oasgate.core.cancellation import CancellationSource, CancellationToken, OperationCancelledError


def test_cancel_runs_callbacks_once() -> None:
    source = CancellationSource()
    calls: list[str] = []
    source.register(lambda: calls.append("first"))

    source.cancel()
    source.cancel()

    assert calls == ["first"]
    assert source.token.is_cancelled


def test_register_after_cancel_invokes_immediately() -> None:
    source = CancellationSource()
    source.cancel()
    calls: list[int] = []

    source.token.register(lambda: calls.append(1))

    assert calls == [1]


def test_unregister_prevents_callback() -> None:
    source = CancellationSource()
    calls: list[int] = []
    unregister = source.register(lambda: calls.append(1))

    unregister()
    source.cancel()

    assert calls == []


def test_raise_if_cancelled() -> None:
    source = CancellationSource()
    source.token.raise_if_cancelled()

    source.cancel()

    with pytest.raises(OperationCancelledError):
        source.token.raise_if_cancelled()


def test_linked_source_follows_parent() -> None:
    parent = CancellationSource()
    with CancellationSource.linked(parent.token) as child:
        assert not child.is_cancelled
        parent.cancel()
        assert child.token.is_cancelled


def test_linked_source_does_not_cancel_parent() -> None:
    parent = CancellationSource()
    with CancellationSource.linked(parent.token) as child:
        child.cancel()

    assert not parent.is_cancelled


def test_closed_link_ignores_parent() -> None:
    parent = CancellationSource()
    child = CancellationSource.linked(parent.token)
    child.close()

    parent.cancel()

    assert not child.is_cancelled


def test_cancel_after_deadline() -> None:
    with CancellationSource() as source:
        source.cancel_after(0.01)
        assert source.token.wait(5.0)


def test_wait_returns_false_without_cancellation() -> None:
    assert CancellationToken.none().wait(0.0) is False
