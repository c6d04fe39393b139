# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Bound an operation by a user cancellation token and a fixed ceiling."""

from __future__ import annotations

from collections.abc import Callable
from typing import Final

from ..core.cancellation import CancellationSource, CancellationToken, OperationCancelledError
from ..logging import BuildLogger

DEFAULT_TIMEOUT_SECONDS: Final[float] = 300.0


def run_with_timeout(
    operation: Callable[[CancellationToken], bool],
    *,
    user_token: CancellationToken,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    logger: BuildLogger,
) -> bool:
    """Run ``operation`` until it finishes, the user cancels, or ``timeout`` elapses.

    Args:
        operation: Callable receiving the linked token and returning success.
        user_token: Token cancelled when the user aborts the build.
        timeout: Ceiling in seconds for the whole operation.
        logger: Build logger receiving the timeout message.

    Returns:
        bool: Result of ``operation``, or ``False`` when it was cancelled.
    """

    with CancellationSource.linked(user_token) as source:
        source.cancel_after(timeout)
        try:
            return operation(source.token)
        except OperationCancelledError:
            if user_token.is_cancelled:
                return False
            logger.error(f"The operation did not complete within the {timeout:g} second limit and was cancelled.")
            return False


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "run_with_timeout"]
