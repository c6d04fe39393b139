# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Contract generation from the compiled Web API assembly."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Final

from ..core.cancellation import CancellationSource, CancellationToken, OperationCancelledError
from ..core.runtime.process import ProcessRunner, ensure_executable
from ..errors import ToolInvocationError
from ..logging import BuildLogger

GENERATED_NAME_FORMAT: Final[str] = "openapi-{document}.yaml"


def generated_document_path(output_directory: Path, document_name: str) -> Path:
    """Return the file the generator writes for ``document_name``."""

    return output_directory / GENERATED_NAME_FORMAT.format(document=document_name.lower())


class SpecGenerator:
    """Run ``swagger tofile`` once per document, concurrently."""

    def __init__(
        self,
        runner: ProcessRunner,
        logger: BuildLogger,
        executable: Path,
        output_directory: Path,
        assembly_path: Path,
    ) -> None:
        self._runner = runner
        self._logger = logger
        self._executable = executable
        self._output_directory = output_directory
        self._assembly_path = assembly_path

    def generate_all(
        self,
        document_names: Sequence[str],
        token: CancellationToken,
        *,
        timeout: float | None = None,
    ) -> list[Path]:
        """Generate every document and return the output paths in input order.

        Args:
            document_names: Names of the documents exposed by the assembly.
            token: Cancellation token of the enclosing run.
            timeout: Ceiling for the whole generation phase in seconds.

        Returns:
            list[Path]: Generated files, positionally matching ``document_names``.

        Raises:
            ToolInvocationError: When a document could not be generated or the
                phase exceeded ``timeout``.
        """

        if not document_names:
            return []
        ensure_executable(self._executable)
        with CancellationSource.linked(token) as phase:
            if timeout is not None:
                phase.cancel_after(timeout)
            try:
                return self._run_concurrently(document_names, phase)
            except OperationCancelledError:
                if token.is_cancelled:
                    raise
                raise ToolInvocationError(f"Contract generation did not complete within {timeout:g} seconds") from None

    def generate(self, document_name: str, token: CancellationToken) -> Path:
        """Generate a single document.

        Raises:
            ToolInvocationError: When the generator fails or writes no output.
        """

        token.raise_if_cancelled()
        output = generated_document_path(self._output_directory, document_name)
        output.unlink(missing_ok=True)
        self._logger.info(f"Generating contract for document '{document_name}'.")
        result = self._runner.run(
            self._executable,
            ["tofile", "--output", str(output), "--yaml", str(self._assembly_path), document_name],
            token=token,
        )
        if not result.succeeded:
            if result.stdout:
                self._logger.info(result.stdout)
            if result.stderr:
                self._logger.error(result.stderr)
            raise ToolInvocationError(f"OpenAPI document '{document_name}' could not be created.")
        if not output.is_file():
            raise ToolInvocationError(f"OpenAPI document '{document_name}' was not written to {output}.")
        return output

    def _run_concurrently(self, document_names: Sequence[str], phase: CancellationSource) -> list[Path]:
        results: dict[int, Path] = {}
        with ThreadPoolExecutor(max_workers=len(document_names), thread_name_prefix="oasgate-generate") as executor:
            futures: dict[Future[Path], int] = {
                executor.submit(self.generate, name, phase.token): index for index, name in enumerate(document_names)
            }
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except BaseException:
                phase.cancel()
                for pending in futures:
                    pending.cancel()
                raise
        return [results[index] for index in range(len(document_names))]


def update_specification_files(
    baselines: Sequence[Path],
    generated: Sequence[Path],
    logger: BuildLogger,
    token: CancellationToken,
) -> list[Path]:
    """Overwrite each baseline with its positionally paired generated document.

    A baseline without a generated counterpart is reported as a warning and
    left untouched.

    Returns:
        list[Path]: Baselines that were overwritten.
    """

    logger.info("Updating specification files.")
    updated: list[Path] = []
    for index, baseline in enumerate(baselines):
        token.raise_if_cancelled()
        counterpart = generated[index] if index < len(generated) else None
        if counterpart is None or not counterpart.is_file():
            logger.warning(f"Could not find a generated document for {baseline}.")
            continue
        logger.info(f"Overwriting {baseline} with {counterpart}.")
        baseline.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(counterpart, baseline)
        updated.append(baseline)
    return updated


__all__ = ["SpecGenerator", "generated_document_path", "update_specification_files"]
