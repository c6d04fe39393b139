# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Spectral lint step with checksum-based skipping."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path
from typing import Final

from ..cache.checksum import ChecksumDiffCache
from ..core.cancellation import CancellationToken
from ..core.runtime.process import ProcessRunner, ensure_executable
from ..errors import ToolInvocationError
from ..logging import BuildLogger
from ..reporting import CiReportRenderer

REPORT_NAME_FORMAT: Final[str] = "spectral-{stem}.txt"
SUMMARY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[0-9]+ problems? \((?P<errors>[0-9]+) errors?, (?P<warnings>[0-9]+) warnings?, [0-9]+ infos?, [0-9]+ hints?\)"
)


def parse_summary(line: str) -> tuple[int, int] | None:
    """Return ``(errors, warnings)`` from a Spectral summary line, if ``line`` is one."""

    match = SUMMARY_PATTERN.search(line)
    if match is None:
        return None
    return int(match.group("errors")), int(match.group("warnings"))


def lint_arguments(document: Path, ruleset: Path, report: Path) -> list[str]:
    """Return the Spectral arguments used to lint ``document``."""

    return [
        "lint",
        str(document),
        "--ruleset",
        str(ruleset),
        "--format",
        "pretty",
        "--format",
        "stylish",
        "--output.stylish",
        str(report),
        "--fail-severity=warn",
        "--verbose",
    ]


class SpectralLinter:
    """Lint documents against a ruleset, reusing reports when nothing changed."""

    def __init__(
        self,
        runner: ProcessRunner,
        logger: BuildLogger,
        executable: Path,
        reports_directory: Path,
        cache: ChecksumDiffCache,
        renderer: CiReportRenderer | None = None,
    ) -> None:
        self._runner = runner
        self._logger = logger
        self._executable = executable
        self._reports_directory = reports_directory
        self._cache = cache
        self._renderer = renderer or CiReportRenderer()

    def report_path(self, document: Path) -> Path:
        """Return the report written for ``document``."""

        return self._reports_directory / REPORT_NAME_FORMAT.format(stem=document.stem)

    def should_run(self, ruleset: Path, documents: Sequence[Path]) -> bool:
        """Return ``True`` unless inputs are unchanged and every report exists."""

        if self._cache.has_ruleset_changed(ruleset):
            return True
        if self._cache.has_any_document_changed(documents):
            return True
        return any(not self.report_path(document).is_file() for document in documents)

    def lint(self, documents: Sequence[Path], ruleset: Path, token: CancellationToken) -> dict[str, str]:
        """Lint ``documents`` or surface the previous reports.

        Args:
            documents: Contract documents to lint.
            ruleset: Local ruleset file.
            token: Cancellation token checked before each document.

        Returns:
            dict[str, str]: Report text keyed by document stem.

        Raises:
            ToolInvocationError: When Spectral did not produce a report.
        """

        if not self.should_run(ruleset, documents):
            self._logger.info("Spectral step skipped since the OpenAPI documents and ruleset have not changed.")
            for document in documents:
                self._logger.info(f"- Check previous report here: {self.report_path(document)}")
                self.surface_previous_report(document)
            return self._read_reports(documents)

        self._reports_directory.mkdir(parents=True, exist_ok=True)
        ensure_executable(self._executable)
        for document in documents:
            token.raise_if_cancelled()
            self._lint_document(document, ruleset, token)
        self._cache.save_execution_snapshot(ruleset, documents)
        return self._read_reports(documents)

    def surface_previous_report(self, document: Path) -> None:
        """Replay the stored report, warning when it recorded problems."""

        report = self.report_path(document)
        for line in report.read_text(encoding="utf-8").splitlines():
            counts = parse_summary(line)
            if counts is None:
                self._logger.info(line)
            elif any(counts):
                self._logger.warning(f"Spectral errors from previous run: {line}")

    def _lint_document(self, document: Path, ruleset: Path, token: CancellationToken) -> None:
        report = self.report_path(document)
        self._logger.info(f"Spectral: validating {document.stem} against ruleset {ruleset}")
        if report.exists():
            self._logger.debug(f"Deleting existing report: {report}")
            report.unlink()

        result = self._runner.run(self._executable, lint_arguments(document, ruleset, report), token=token)
        if result.stdout:
            self._logger.info(result.stdout)
        if result.stderr:
            self._logger.warning(result.stderr)
        if not report.is_file():
            raise ToolInvocationError(
                f"Spectral report for {document} could not be created. Check the output above for details."
            )
        if not result.succeeded:
            self._logger.warning(
                f"Spectral scan detected violation of ruleset. Check the report [{report}] for more details."
            )
        self._renderer.attach(report)
        self._logger.info(f"Spectral report generated: {report}")

    def _read_reports(self, documents: Sequence[Path]) -> dict[str, str]:
        return {document.stem: self.report_path(document).read_text(encoding="utf-8") for document in documents}


__all__ = ["REPORT_NAME_FORMAT", "SUMMARY_PATTERN", "SpectralLinter", "lint_arguments", "parse_summary"]
