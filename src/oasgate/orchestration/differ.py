# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Compare baseline contracts with freshly generated ones."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Final

from ..core.cancellation import CancellationToken
from ..core.runtime.process import ProcessRunner, ensure_executable
from ..errors import ToolInvocationError
from ..logging import BuildLogger

EXCLUDED_ELEMENTS: Final[tuple[str, ...]] = ("description", "examples", "title", "summary")


def diff_arguments(baseline: Path, generated: Path) -> list[str]:
    """Return the ``oasdiff`` arguments comparing ``baseline`` with ``generated``."""

    return [
        "diff",
        str(baseline),
        str(generated),
        "--exclude-elements",
        ",".join(EXCLUDED_ELEMENTS),
        "-f",
        "text",
    ]


class ContractDiffer:
    """Run ``oasdiff`` for each baseline and report drift as warnings."""

    def __init__(self, runner: ProcessRunner, logger: BuildLogger, executable: Path) -> None:
        self._runner = runner
        self._logger = logger
        self._executable = executable

    def compare(
        self,
        baselines: Sequence[Path],
        generated: Sequence[Path],
        token: CancellationToken,
    ) -> list[Path]:
        """Diff each baseline against its positional counterpart, one at a time.

        Args:
            baselines: Source-controlled contract documents.
            generated: Generated documents, positionally paired with ``baselines``.
            token: Cancellation token checked before each document.

        Returns:
            list[Path]: Baselines that drifted from the generated document.

        Raises:
            ToolInvocationError: When ``oasdiff`` itself fails.
        """

        ensure_executable(self._executable)
        drifted: list[Path] = []
        for index, baseline in enumerate(baselines):
            token.raise_if_cancelled()
            counterpart = generated[index] if index < len(generated) else None
            if counterpart is None or not counterpart.is_file():
                self._logger.warning(f"Could not find a generated document to compare with {baseline}.")
                continue
            if self._compare_pair(baseline, counterpart, token):
                drifted.append(baseline)
        return drifted

    def _compare_pair(self, baseline: Path, generated: Path, token: CancellationToken) -> bool:
        self._logger.info(f"Comparing {baseline} with {generated}.")
        result = self._runner.run(self._executable, diff_arguments(baseline, generated), token=token)
        if not result.succeeded:
            if result.stderr:
                self._logger.error(result.stderr)
            raise ToolInvocationError(f"oasdiff failed to compare {baseline} (exit code {result.returncode})")
        output = result.stdout.strip()
        if not output:
            self._logger.info(f"No changes detected between {baseline.name} and the code.")
            return False
        self._logger.warning(
            f"The code does not match the contract {baseline}. "
            f"Update the specification or the code so they agree:\n{output}"
        )
        return True


__all__ = ["ContractDiffer", "EXCLUDED_ELEMENTS", "diff_arguments"]
