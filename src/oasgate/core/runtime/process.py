# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution with cooperative cancellation."""

from __future__ import annotations

import os
import shutil
import stat

# Bandit: subprocess usage is intentional; we provide a controlled wrapper around
# external tool execution, normalising arguments and disabling ``shell=True``.
import subprocess  # nosec B404 suppression_valid: Shell-free subprocess wrapper enforces safe execution.
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Final

from ...errors import InstallError
from ..cancellation import CancellationToken, OperationCancelledError

POLL_INTERVAL_SECONDS: Final[float] = 0.1
TIMEOUT_RETURN_CODE: Final[int] = 124
_EXECUTE_BITS: Final[int] = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


@dataclass(frozen=True, slots=True)
class CommandOptions:
    """Immutable command execution options."""

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    check: bool = False
    timeout: float | None = None

    def with_overrides(
        self,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandOptions:
        """Return a copy with non-``None`` overrides applied.

        Args:
            cwd: Replacement working directory.
            env: Environment variables layered over the existing overlay.
            timeout: Replacement timeout in seconds.

        Returns:
            CommandOptions: Updated options instance.

        Raises:
            ValueError: When ``timeout`` is negative.
        """

        if timeout is not None and timeout < 0:
            raise ValueError("timeout override must be non-negative")
        merged_env = self.env
        if env is not None:
            merged_env = {**(self.env or {}), **env}
        return replace(
            self,
            cwd=cwd if cwd is not None else self.cwd,
            env=merged_env,
            timeout=timeout if timeout is not None else self.timeout,
        )


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Exit status and buffered output captured from a subprocess."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    args: tuple[str, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the process exited with status zero."""

        return self.returncode == 0


class SubprocessExecutionError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status while ``check`` is true."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str | None,
        stderr: str | None,
    ) -> None:
        """Initialise the error with captured subprocess metadata.

        Args:
            command: Normalised command sequence that was executed.
            returncode: Exit status reported by the subprocess.
            stdout: Captured standard output stream.
            stderr: Captured standard error stream.
        """
        super().__init__(
            f"Command '{command[0]}' exited with status {returncode}. stderr: {stderr or '<none>'}",
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def _ensure_text(value: str | bytes | None) -> str:
    """Return ``value`` decoded to text, treating ``None`` as empty.

    Args:
        value: Stream output captured from subprocess execution.

    Returns:
        str: Decoded text output.
    """

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value.decode(errors="ignore")


def _normalize_args(args: Sequence[str]) -> list[str]:
    """Normalise the subprocess argument sequence.

    Args:
        args: Raw command arguments supplied by the caller.

    Returns:
        list[str]: Validated argument list suitable for subprocess execution.

    Raises:
        ValueError: If no arguments are provided.
        FileNotFoundError: If a bare executable name is not on ``PATH``.
    """

    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = (str(arg) for arg in args)
    head_path = Path(head)
    if head_path.is_absolute() or head_path.parent != Path("."):
        return [str(head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def _build_env(overlay: Mapping[str, str] | None) -> dict[str, str] | None:
    if overlay is None:
        return None
    merged = dict(os.environ)
    merged.update({str(key): str(value) for key, value in overlay.items()})
    return merged


def run_command(
    args: Sequence[str],
    *,
    options: CommandOptions | None = None,
    token: CancellationToken | None = None,
) -> ProcessResult:
    """Execute ``args`` and capture its buffered output.

    The call polls the child so that a cancelled ``token`` stops the wait
    promptly; the child is killed before :class:`OperationCancelledError`
    propagates.

    Args:
        args: Command and argument sequence to execute.
        options: Options configuring working directory, environment and timeout.
        token: Cancellation token observed while the process runs.

    Returns:
        ProcessResult: Exit status plus captured stdout and stderr.

    Raises:
        FileNotFoundError: If the executable cannot be resolved.
        OperationCancelledError: When ``token`` is cancelled before completion.
        SubprocessExecutionError: When ``check`` is true and the process exits
            with a non-zero status.
    """

    resolved_options = options or CommandOptions()
    if token is not None:
        token.raise_if_cancelled()
    normalized = _normalize_args(args)

    # Bandit: commands originate from vetted tool descriptors; we pass
    # argument lists directly without shell expansion.
    process = subprocess.Popen(  # nosec B603 - controlled arguments, not user supplied
        normalized,
        cwd=str(resolved_options.cwd) if resolved_options.cwd is not None else None,
        env=_build_env(resolved_options.env),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    waited = 0.0
    while True:
        try:
            raw_stdout, raw_stderr = process.communicate(timeout=POLL_INTERVAL_SECONDS)
            result = ProcessResult(
                returncode=process.returncode,
                stdout=_ensure_text(raw_stdout),
                stderr=_ensure_text(raw_stderr),
                args=tuple(normalized),
            )
            break
        except subprocess.TimeoutExpired:
            waited += POLL_INTERVAL_SECONDS
            if token is not None and token.is_cancelled:
                _terminate(process)
                raise OperationCancelledError(f"Command '{normalized[0]}' was cancelled") from None
            timeout_value = resolved_options.timeout
            if timeout_value is not None and waited >= timeout_value:
                raw_stdout, raw_stderr = _terminate(process)
                result = ProcessResult(
                    returncode=TIMEOUT_RETURN_CODE,
                    stdout=_ensure_text(raw_stdout),
                    stderr=f"{_ensure_text(raw_stderr)}\nCommand timed out after {timeout_value:.1f}s".lstrip(),
                    args=tuple(normalized),
                )
                break

    if resolved_options.check and result.returncode != 0:
        raise SubprocessExecutionError(normalized, result.returncode, result.stdout, result.stderr)
    return result


def _terminate(process: subprocess.Popen[bytes]) -> tuple[bytes | None, bytes | None]:
    process.kill()
    try:
        return process.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        return None, None


class ProcessRunner:
    """Run external tools from a fixed working directory."""

    def __init__(self, working_directory: Path, *, env: Mapping[str, str] | None = None) -> None:
        """Bind the runner to ``working_directory``.

        Args:
            working_directory: Directory every tool is executed from.
            env: Optional environment overlay applied to every invocation.
        """

        self._options = CommandOptions(cwd=working_directory, env=env)

    @property
    def working_directory(self) -> Path | None:
        """Return the working directory applied to every command."""

        return self._options.cwd

    def run(
        self,
        executable: Path | str,
        arguments: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> ProcessResult:
        """Execute ``executable`` with ``arguments``.

        Exit codes are returned untouched; callers decide what a non-zero
        status means for their tool.

        Args:
            executable: Executable path or name on ``PATH``.
            arguments: Arguments passed after the executable.
            env: Environment overrides for this invocation.
            token: Cancellation token observed while waiting.

        Returns:
            ProcessResult: Captured exit status and output.
        """

        options = self._options.with_overrides(env=env)
        return run_command([str(executable), *arguments], options=options, token=token)


def ensure_executable(path: Path) -> None:
    """Grant execute permission on ``path`` for user, group and other.

    Windows has no execute bit, so the call is a no-op there.

    Args:
        path: Freshly downloaded binary.

    Raises:
        InstallError: When the permission cannot be granted.
    """

    if os.name == "nt":
        return
    try:
        mode = path.stat().st_mode
        if mode & _EXECUTE_BITS != _EXECUTE_BITS:
            path.chmod(mode | _EXECUTE_BITS)
    except OSError as exc:
        raise InstallError(f"Failed to provide execute permission to {path}: {exc}") from exc


__all__ = [
    "CommandOptions",
    "ProcessResult",
    "ProcessRunner",
    "SubprocessExecutionError",
    "ensure_executable",
    "run_command",
]
