# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the retrying downloader."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path

import pytest
import requests
from conftest import FakeResponse, FakeSession

from oasgate.core.cancellation import CancellationSource, OperationCancelledError
from oasgate.errors import DownloadError
from oasgate.tooling.download import Downloader, RetryPolicy, parse_retry_after

URL = "https://example.invalid/tool"
NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_downloader(session: FakeSession, sleeps: list[float], **policy: float) -> Downloader:
    return Downloader(session, policy=RetryPolicy(**policy), sleep=sleeps.append, now=lambda: NOW)


def test_existing_destination_skips_network(tmp_path: Path) -> None:
    destination = tmp_path / "tool"
    destination.write_bytes(b"cached")
    session = FakeSession()

    result = make_downloader(session, []).download(URL, destination)

    assert result == destination
    assert session.calls == []
    assert destination.read_bytes() == b"cached"


def test_retries_transient_statuses_then_succeeds(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(503), FakeResponse(503), FakeResponse(200, b"payload")])
    sleeps: list[float] = []
    destination = tmp_path / "bin" / "tool"

    make_downloader(session, sleeps).download(URL, destination)

    assert len(session.calls) == 3
    assert sleeps == [0.2, 0.4]
    assert destination.read_bytes() == b"payload"


def test_gives_up_after_max_attempts(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(500), FakeResponse(500), FakeResponse(500)])
    destination = tmp_path / "tool"

    with pytest.raises(DownloadError) as excinfo:
        make_downloader(session, []).download(URL, destination)

    assert len(session.calls) == 3
    assert excinfo.value.url == URL
    assert not destination.exists()


def test_non_retryable_status_fails_immediately(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(404)])

    with pytest.raises(DownloadError):
        make_downloader(session, []).download(URL, tmp_path / "tool")

    assert len(session.calls) == 1


def test_too_many_requests_and_timeouts_are_retried(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(429), requests.ConnectionError("reset"), FakeResponse(200, b"ok")])

    make_downloader(session, []).download(URL, tmp_path / "tool")

    assert len(session.calls) == 3


def test_retry_after_seconds_overrides_backoff(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(503, headers={"Retry-After": "7"}), FakeResponse(200, b"ok")])
    sleeps: list[float] = []

    make_downloader(session, sleeps).download(URL, tmp_path / "tool")

    assert sleeps == [7.0]


def test_non_positive_retry_after_keeps_backoff(tmp_path: Path) -> None:
    session = FakeSession([FakeResponse(503, headers={"Retry-After": "0"}), FakeResponse(200, b"ok")])
    sleeps: list[float] = []

    make_downloader(session, sleeps).download(URL, tmp_path / "tool")

    assert sleeps == [0.2]


def test_parse_retry_after_http_date() -> None:
    header = format_datetime(NOW + timedelta(seconds=30), usegmt=True)

    assert parse_retry_after(header, now=NOW) == pytest.approx(30.0)
    assert parse_retry_after("not a date", now=NOW) is None
    assert parse_retry_after(None, now=NOW) is None


class _ExplodingResponse(FakeResponse):
    def iter_content(self, chunk_size: int = 8192):
        yield b"partial"
        raise requests.ConnectionError("stream interrupted")


def test_partial_file_removed_on_write_failure(tmp_path: Path) -> None:
    response = _ExplodingResponse(200)
    session = FakeSession([response])
    destination = tmp_path / "tool"

    with pytest.raises(DownloadError):
        make_downloader(session, []).download(URL, destination)

    assert not destination.exists()
    assert response.closed


def test_cancelled_token_stops_before_request(tmp_path: Path) -> None:
    source = CancellationSource()
    source.cancel()
    session = FakeSession()

    with pytest.raises(OperationCancelledError):
        Downloader(session).download(URL, tmp_path / "tool", source.token)

    assert session.calls == []


def test_policy_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
