# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Custom exceptions raised by oasgate orchestration steps."""

from __future__ import annotations


class OasgateError(RuntimeError):
    """Base class for failures surfaced by the orchestrator."""


class ConfigurationError(OasgateError):
    """Raised when the invocation settings are invalid."""


class DownloadError(OasgateError):
    """Raised when a remote artifact could not be downloaded."""

    def __init__(self, url: str, message: str | None = None) -> None:
        """Initialise the error with the failing ``url``.

        Args:
            url: Remote location that could not be fetched.
            message: Optional detail appended to the default message.
        """

        detail = f": {message}" if message else ""
        super().__init__(f"{url} could not be downloaded{detail}")
        self.url = url


class InstallError(OasgateError):
    """Raised when a tool could not be installed or made executable."""


class ToolInvocationError(OasgateError):
    """Raised when a tool ran but did not produce its expected output."""


__all__ = (
    "ConfigurationError",
    "DownloadError",
    "InstallError",
    "OasgateError",
    "ToolInvocationError",
)
