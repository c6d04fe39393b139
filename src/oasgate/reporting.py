# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Attach lint reports to the Azure DevOps build summary."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Final

from rich.text import Text

from .runtime.console.manager import get_console

CI_ENVIRONMENT_KEYS: Final[tuple[str, ...]] = ("SYSTEM_TEAMFOUNDATIONCOLLECTIONURI", "AGENT_NAME")
ATTACHMENT_COMMAND: Final[str] = "##vso[task.addattachment type=Distributedtask.Core.Summary;name=Spectral results;]{path}"


def _print_raw(line: str) -> None:
    get_console(color=False, emoji=False).print(Text(line))


class CiReportRenderer:
    """Print build-summary attachment commands when running under Azure Pipelines."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        *,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._emit = emit or _print_raw

    @property
    def enabled(self) -> bool:
        """Return ``True`` when a pipeline agent environment is detected."""

        return any(self._environ.get(key) for key in CI_ENVIRONMENT_KEYS)

    def attach(self, report_path: Path) -> bool:
        """Emit the attachment command for ``report_path``.

        Returns:
            bool: ``True`` when a command was emitted.
        """

        if not self.enabled:
            return False
        self._emit(ATTACHMENT_COMMAND.format(path=report_path))
        return True


__all__ = ["ATTACHMENT_COMMAND", "CI_ENVIRONMENT_KEYS", "CiReportRenderer"]
