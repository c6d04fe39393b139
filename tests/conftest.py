# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures and fakes standing in for network and process access."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

import pytest

from oasgate.core.cancellation import CancellationToken
from oasgate.core.runtime.process import ProcessResult
from oasgate.logging import BuildLogger, MemorySink
from oasgate.tooling.descriptors import PlatformInfo, ToolSet, default_descriptors

Handler = Callable[[str, list[str]], ProcessResult]


class FakeResponse:
    """In-memory stand-in for ``requests.Response``."""

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: Mapping[str, str] | None = None,
        chunks: Iterable[bytes] | None = None,
    ) -> None:
        self.status_code = status_code
        self.headers = dict(headers or {})
        self._chunks = list(chunks) if chunks is not None else [body]
        self.closed = False

    def iter_content(self, chunk_size: int = 8192) -> Iterable[bytes]:
        yield from self._chunks

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Return queued responses (or raise queued exceptions) and record each URL."""

    def __init__(self, responses: Sequence[FakeResponse | BaseException] = ()) -> None:
        self._responses = list(responses)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get(self, url: str, *, stream: bool, timeout: tuple[float, float]) -> FakeResponse:
        with self._lock:
            self.calls.append(url)
            if not self._responses:
                raise AssertionError(f"unexpected request for {url}")
            outcome = self._responses.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeRunner:
    """Record tool invocations and answer them through ``handler``."""

    def __init__(self, handler: Handler | None = None, working_directory: Path | None = None) -> None:
        self._handler = handler
        self.working_directory = working_directory
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def run(
        self,
        executable: Path | str,
        arguments: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> ProcessResult:
        if token is not None:
            token.raise_if_cancelled()
        with self._lock:
            self.calls.append((str(executable), tuple(arguments)))
        if self._handler is None:
            return ProcessResult(returncode=0, args=(str(executable), *arguments))
        return self._handler(str(executable), list(arguments))

    def commands(self, subcommand: str) -> list[tuple[str, ...]]:
        """Return recorded argument tuples whose first argument is ``subcommand``."""

        return [arguments for _, arguments in self.calls if arguments and arguments[0] == subcommand]


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def build_logger(memory_sink: MemorySink) -> BuildLogger:
    return BuildLogger(memory_sink)


@pytest.fixture
def linux_platform() -> PlatformInfo:
    return PlatformInfo(system="linux", architecture="x64")


@pytest.fixture
def tool_set(tmp_path: Path, linux_platform: PlatformInfo) -> ToolSet:
    """Return descriptors rooted in a temporary tools directory."""

    return default_descriptors(tmp_path / "tools", linux_platform)


def install_fake_executable(path: Path) -> Path:
    """Create an empty file standing in for an installed tool."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path
