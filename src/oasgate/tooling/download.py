# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Retrying HTTP downloader used for tool artifacts and remote rulesets."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Final, Protocol

import requests

from ..core.cancellation import CancellationToken
from ..errors import DownloadError

RETRY_AFTER_HEADER: Final[str] = "Retry-After"
REQUEST_TIMEOUT_STATUS: Final[int] = 408
TOO_MANY_REQUESTS_STATUS: Final[int] = 429
SERVER_ERROR_FLOOR: Final[int] = 500
CLIENT_ERROR_FLOOR: Final[int] = 400


class _HttpResponse(Protocol):
    """Minimal subset of ``requests.Response`` used by downloads."""

    status_code: int
    headers: Mapping[str, str]

    def iter_content(self, chunk_size: int = 8192) -> Iterable[bytes]:
        """Yield response body chunks."""

    def close(self) -> None:
        """Release the underlying connection."""


class _HttpSession(Protocol):
    """Callable surface of ``requests.Session`` used by the downloader."""

    def get(
        self,
        url: str,
        *,
        stream: bool,
        timeout: tuple[float, float],
    ) -> _HttpResponse:
        """Return an HTTP response for ``url``."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Describe how many attempts are made and how long to wait between them."""

    max_attempts: int = 3
    initial_delay: float = 0.2
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    chunk_size: int = 81920

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")

    def should_retry_status(self, status: int) -> bool:
        """Return ``True`` when ``status`` indicates a transient server condition.

        Args:
            status: HTTP status code returned by the server.

        Returns:
            bool: ``True`` for 5xx, 408 and 429 responses.
        """

        return status >= SERVER_ERROR_FLOOR or status in {REQUEST_TIMEOUT_STATUS, TOO_MANY_REQUESTS_STATUS}

    def backoff(self, attempt: int) -> float:
        """Return the computed delay after the 1-based ``attempt`` failed.

        Args:
            attempt: Attempt number that just failed.

        Returns:
            float: Delay in seconds; doubles on each attempt.
        """

        return self.initial_delay * (2 ** (attempt - 1))


def parse_retry_after(value: str | None, *, now: datetime) -> float | None:
    """Return the delay in seconds requested by a ``Retry-After`` header.

    Args:
        value: Raw header value, either delta seconds or an HTTP date.
        now: Current time used to convert absolute dates into a delta.

    Returns:
        float | None: Requested delay, or ``None`` when absent or unparsable.
        Negative values are returned as-is so callers can ignore them.
    """

    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        return None
    if stripped.lstrip("-").isdigit():
        return float(int(stripped))
    try:
        moment = parsedate_to_datetime(stripped)
    except (TypeError, ValueError):
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - now).total_seconds()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Downloader:
    """Fetch remote artifacts with exponential backoff and ``Retry-After`` support."""

    def __init__(
        self,
        session: _HttpSession | None = None,
        *,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Create a downloader.

        Args:
            session: HTTP session; a fresh ``requests.Session`` when omitted.
            policy: Retry policy applied to every download.
            sleep: Replacement for the cancellation-aware wait, used by tests.
            now: Clock returning timezone-aware ``datetime`` values.
        """

        self._session: _HttpSession = session if session is not None else requests.Session()
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._now = now or _utcnow

    @property
    def policy(self) -> RetryPolicy:
        """Return the retry policy in use."""

        return self._policy

    def download(self, url: str, destination: Path, token: CancellationToken | None = None) -> Path:
        """Download ``url`` into ``destination`` unless it already exists.

        Args:
            url: Remote artifact location.
            destination: File path receiving the artifact.
            token: Cancellation token observed between attempts and chunks.

        Returns:
            Path: ``destination``.

        Raises:
            DownloadError: When every attempt failed or the body could not be written.
            OperationCancelledError: When ``token`` is cancelled.
        """

        active = token or CancellationToken.none()
        if destination.exists():
            return destination
        destination.parent.mkdir(parents=True, exist_ok=True)
        response = self._fetch(url, active)
        try:
            self._write(url, response, destination, active)
        finally:
            response.close()
        return destination

    def _fetch(self, url: str, token: CancellationToken) -> _HttpResponse:
        policy = self._policy
        timeout = (policy.connect_timeout, policy.read_timeout)
        for attempt in range(1, policy.max_attempts + 1):
            token.raise_if_cancelled()
            is_last_attempt = attempt >= policy.max_attempts
            delay_hint: float | None = None
            try:
                response = self._session.get(url, stream=True, timeout=timeout)
            except (requests.ConnectionError, requests.Timeout) as exc:
                if is_last_attempt:
                    raise DownloadError(url, str(exc)) from exc
            else:
                status = response.status_code
                if status < CLIENT_ERROR_FLOOR:
                    return response
                if is_last_attempt or not policy.should_retry_status(status):
                    response.close()
                    raise DownloadError(url, f"HTTP {status}")
                delay_hint = parse_retry_after(response.headers.get(RETRY_AFTER_HEADER), now=self._now())
                response.close()
            delay = delay_hint if delay_hint is not None and delay_hint > 0 else policy.backoff(attempt)
            self._wait(delay, token)
        raise DownloadError(url)

    def _wait(self, seconds: float, token: CancellationToken) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            token.wait(seconds)
        token.raise_if_cancelled()

    def _write(self, url: str, response: _HttpResponse, destination: Path, token: CancellationToken) -> None:
        try:
            with destination.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=self._policy.chunk_size):
                    token.raise_if_cancelled()
                    if chunk:
                        handle.write(chunk)
        except (requests.RequestException, OSError) as exc:
            destination.unlink(missing_ok=True)
            raise DownloadError(url, str(exc)) from exc
        except BaseException:
            destination.unlink(missing_ok=True)
            raise


__all__ = ["Downloader", "RetryPolicy", "parse_retry_after"]
