# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Cooperative cancellation primitives shared by every orchestration step."""

from __future__ import annotations

import threading
from collections.abc import Callable
from types import TracebackType

Callback = Callable[[], None]


class OperationCancelledError(RuntimeError):
    """Raised when an operation observes a cancelled token."""

    def __init__(self, message: str = "The operation was cancelled.") -> None:
        super().__init__(message)


class CancellationToken:
    """Read-only view over a :class:`CancellationSource`."""

    __slots__ = ("_source",)

    def __init__(self, source: CancellationSource) -> None:
        self._source = source

    @classmethod
    def none(cls) -> CancellationToken:
        """Return a token that is never cancelled.

        Returns:
            CancellationToken: Token bound to a private, never-cancelled source.
        """

        return CancellationSource().token

    @property
    def is_cancelled(self) -> bool:
        """Return ``True`` once the owning source has been cancelled."""

        return self._source.is_cancelled

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` when cancellation was requested.

        Raises:
            OperationCancelledError: If the token has been cancelled.
        """

        if self._source.is_cancelled:
            raise OperationCancelledError

    def wait(self, seconds: float) -> bool:
        """Block for up to ``seconds`` and return ``True`` if cancelled meanwhile.

        Args:
            seconds: Maximum duration to wait.

        Returns:
            bool: ``True`` when the token was cancelled before the delay elapsed.
        """

        return self._source.wait(seconds)

    def register(self, callback: Callback) -> Callback:
        """Invoke ``callback`` when the token is cancelled.

        Args:
            callback: Zero-argument callable run on cancellation.

        Returns:
            Callback: Function removing the registration when called.
        """

        return self._source.register(callback)


class CancellationSource:
    """Own a cancellation flag, optional deadline and linked parent tokens."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callback] = []
        self._timer: threading.Timer | None = None
        self._parent_registrations: list[Callback] = []
        self.token = CancellationToken(self)

    @classmethod
    def linked(cls, *tokens: CancellationToken) -> CancellationSource:
        """Return a source cancelled whenever any of ``tokens`` is cancelled.

        Args:
            *tokens: Parent tokens propagating cancellation to the new source.

        Returns:
            CancellationSource: Linked source; close it to release the parents.
        """

        source = cls()
        for token in tokens:
            source._parent_registrations.append(token.register(source.cancel))
        return source

    @property
    def is_cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has run."""

        return self._event.is_set()

    def cancel(self) -> None:
        """Cancel the source and run registered callbacks exactly once."""

        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def cancel_after(self, seconds: float) -> None:
        """Schedule cancellation once ``seconds`` have elapsed.

        Args:
            seconds: Delay before the source cancels itself.
        """

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(seconds, self.cancel)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def wait(self, seconds: float) -> bool:
        """Wait for cancellation for at most ``seconds``.

        Args:
            seconds: Maximum duration to wait.

        Returns:
            bool: ``True`` when the source was cancelled.
        """

        return self._event.wait(max(seconds, 0.0))

    def register(self, callback: Callback) -> Callback:
        """Register ``callback`` and return a function that removes it.

        Args:
            callback: Zero-argument callable run on cancellation.

        Returns:
            Callback: Unregister function; a no-op when already cancelled.
        """

        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def unregister() -> None:
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return unregister
        callback()
        return _noop

    def close(self) -> None:
        """Release the deadline timer and detach from parent tokens."""

        with self._lock:
            timer, self._timer = self._timer, None
            registrations = list(self._parent_registrations)
            self._parent_registrations.clear()
        if timer is not None:
            timer.cancel()
        for unregister in registrations:
            unregister()

    def __enter__(self) -> CancellationSource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


def _noop() -> None:
    return None


__all__ = [
    "CancellationSource",
    "CancellationToken",
    "OperationCancelledError",
]
