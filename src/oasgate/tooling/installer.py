# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Concurrent installation of the external tools used by the pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Final

from ..core.cancellation import CancellationSource, CancellationToken
from ..core.runtime.process import ProcessResult, ProcessRunner, ensure_executable
from ..errors import InstallError
from ..logging import BuildLogger
from .descriptors import ToolDescriptor
from .download import Downloader

DEFAULT_INSTALL_ATTEMPTS: Final[int] = 2
TAR_EXECUTABLE: Final[str] = "tar"


class DependencyInstaller:
    """Install tool descriptors concurrently with an idempotent fast path."""

    def __init__(
        self,
        downloader: Downloader,
        runner: ProcessRunner,
        logger: BuildLogger,
        *,
        install_attempts: int = DEFAULT_INSTALL_ATTEMPTS,
    ) -> None:
        """Create the installer.

        Args:
            downloader: Downloader fetching remote artifacts.
            runner: Process runner used for decompression and command installs.
            logger: Build logger receiving progress messages.
            install_attempts: Attempts made for command-installed tools.

        Raises:
            ValueError: When ``install_attempts`` is lower than one.
        """

        if install_attempts < 1:
            raise ValueError("install_attempts must be at least 1")
        self._downloader = downloader
        self._runner = runner
        self._logger = logger
        self._install_attempts = install_attempts

    def install_all(self, descriptors: Sequence[ToolDescriptor], token: CancellationToken) -> dict[str, Path]:
        """Install every descriptor concurrently and return their executables.

        The first failing install cancels the remaining ones and propagates.

        Args:
            descriptors: Tools to install.
            token: Cancellation token bounding the whole batch.

        Returns:
            dict[str, Path]: Executable path keyed by tool name.
        """

        if not descriptors:
            return {}
        installed: dict[str, Path] = {}
        with CancellationSource.linked(token) as batch:
            with ThreadPoolExecutor(max_workers=len(descriptors), thread_name_prefix="oasgate-install") as executor:
                futures: dict[Future[Path], ToolDescriptor] = {
                    executor.submit(self.install, descriptor, batch.token): descriptor for descriptor in descriptors
                }
                try:
                    for future in as_completed(futures):
                        installed[futures[future].name] = future.result()
                except BaseException:
                    batch.cancel()
                    for pending in futures:
                        pending.cancel()
                    raise
        return installed

    def install(self, descriptor: ToolDescriptor, token: CancellationToken) -> Path:
        """Install ``descriptor`` unless its executable is already present.

        Args:
            descriptor: Tool to install.
            token: Cancellation token observed by network and process calls.

        Returns:
            Path: Executable path of the installed tool.

        Raises:
            InstallError: When installation did not yield an executable.
        """

        token.raise_if_cancelled()
        descriptor.install_dir.mkdir(parents=True, exist_ok=True)
        if descriptor.install_command is not None:
            return self._install_with_command(descriptor, token)

        executable = descriptor.executable_path
        if executable.exists():
            self._logger.debug(f"{descriptor.name} {descriptor.version} already installed at {executable}.")
            ensure_executable(executable)
            return executable
        if descriptor.url is None:
            raise InstallError(f"{descriptor.name} has neither a download URL nor an install command")

        self._logger.info(f"Starting {descriptor.name} installation.")
        self._downloader.download(descriptor.url, descriptor.artifact_path, token)
        if descriptor.archive:
            self._decompress(descriptor, token)
        if not executable.exists():
            raise InstallError(f"{descriptor.name} executable was not found at {executable} after installation")
        ensure_executable(executable)
        self._logger.info(f"{descriptor.name} installation completed.")
        return executable

    def _decompress(self, descriptor: ToolDescriptor, token: CancellationToken) -> None:
        if descriptor.executable_path.exists():
            return
        try:
            result = self._runner.run(
                TAR_EXECUTABLE,
                ["-xzf", str(descriptor.artifact_path), "-C", str(descriptor.install_dir)],
                token=token,
            )
        except FileNotFoundError as exc:
            raise InstallError(f"Unable to decompress {descriptor.artifact_path}: {exc}") from exc
        if not result.succeeded:
            self._log_output(result)
            raise InstallError(f"Failed to decompress {descriptor.artifact_path} (exit code {result.returncode})")

    def _install_with_command(self, descriptor: ToolDescriptor, token: CancellationToken) -> Path:
        executable = descriptor.executable_path
        if executable.exists():
            self._logger.debug(f"{descriptor.name} {descriptor.version} already installed at {executable}.")
            return executable
        command = descriptor.install_command or ()
        self._logger.info(f"Starting {descriptor.name} installation.")
        result: ProcessResult | None = None
        for attempt in range(1, self._install_attempts + 1):
            try:
                result = self._runner.run(command[0], list(command[1:]), token=token)
            except FileNotFoundError as exc:
                raise InstallError(f"{descriptor.name} could not be installed: {exc}") from exc
            if result.succeeded:
                break
            if attempt < self._install_attempts:
                self._logger.info(
                    f"{descriptor.name} installation failed (attempt {attempt}/{self._install_attempts}). Retrying..."
                )
        if result is None or not result.succeeded:
            if result is not None:
                self._log_output(result)
            raise InstallError(f"{descriptor.name} could not be installed.")
        self._logger.info(f"{descriptor.name} installation completed.")
        return executable

    def _log_output(self, result: ProcessResult) -> None:
        if result.stdout:
            self._logger.info(result.stdout)
        if result.stderr:
            self._logger.error(result.stderr)


__all__ = ["DEFAULT_INSTALL_ATTEMPTS", "DependencyInstaller"]
