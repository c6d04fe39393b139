# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Implementation of the `oasgate run` command."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import requests
import typer

from ..config import OrchestratorSettings, load_pyproject_settings
from ..core.cancellation import CancellationSource, CancellationToken
from ..core.runtime.process import ProcessRunner
from ..errors import ConfigurationError
from ..logging import BuildLogger, console_sink, fail, info, ok
from ..orchestration.envelope import run_with_timeout
from ..orchestration.orchestrator import Orchestrator
from ..tooling.download import Downloader


def run_command(
    mode: str | None = typer.Option(
        None,
        "--mode",
        "-m",
        help=(
            "Operating mode: generate or validate "
            "(CodeFirst, ContractFirst, GenerateContract and ValidateContract are accepted)."
        ),
    ),
    documents: list[str] | None = typer.Option(
        None,
        "--document",
        "-d",
        help="Document name exposed by the Web API; repeat for several documents.",
    ),
    specification_files: list[Path] | None = typer.Option(
        None,
        "--spec-file",
        "-s",
        help="Baseline specification file, paired positionally with --document.",
    ),
    ruleset: str | None = typer.Option(None, "--ruleset", help="Ruleset URL or local file."),
    profile: str | None = typer.Option(None, "--profile", help="Published ruleset profile: backend or frontend."),
    compare: bool | None = typer.Option(
        None,
        "--compare/--no-compare",
        help="Compare the code against the baselines in validate mode.",
    ),
    warnings_as_errors: bool | None = typer.Option(
        None,
        "--warnings-as-errors/--no-warnings-as-errors",
        help="Fail the run when any warning is reported.",
    ),
    tools_directory: Path | None = typer.Option(None, "--tools-dir", help="Directory holding installed tools."),
    assembly: Path | None = typer.Option(None, "--assembly", help="Compiled Web API assembly used for generation."),
    timeout: float | None = typer.Option(None, "--timeout", help="Ceiling in seconds for the whole run."),
    generation_timeout: float | None = typer.Option(
        None,
        "--generation-timeout",
        help="Ceiling in seconds for contract generation.",
    ),
    install_attempts: int | None = typer.Option(
        None,
        "--install-attempts",
        help="Attempts made for command-installed tools.",
    ),
    working_directory: Path | None = typer.Option(
        None,
        "--working-dir",
        "-C",
        help="Directory every tool runs from.",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        help="pyproject.toml providing [tool.oasgate] defaults.",
    ),
    emoji: bool = typer.Option(True, "--emoji/--no-emoji", help="Toggle emoji in CLI output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug messages."),
) -> None:
    """Install tools, then generate, compare and lint the configured contracts."""

    root = (working_directory or Path.cwd()).resolve()
    overrides: dict[str, Any] = {
        "mode": mode,
        "document_names": documents or None,
        "specification_files": specification_files or None,
        "ruleset": ruleset,
        "profile": profile,
        "compare_code_against_spec": compare,
        "treat_warnings_as_errors": warnings_as_errors,
        "tools_directory": tools_directory,
        "web_api_assembly_path": assembly,
        "timeout_seconds": timeout,
        "generation_timeout_seconds": generation_timeout,
        "install_attempts": install_attempts,
    }
    try:
        values = load_pyproject_settings(config_file or root / "pyproject.toml")
        values.update({key: value for key, value in overrides.items() if value is not None})
        values["working_directory"] = root
        settings = OrchestratorSettings.build(**values)
    except ConfigurationError as exc:
        fail(str(exc), use_emoji=emoji)
        raise typer.Exit(code=1) from exc

    info(f"Running oasgate in {settings.mode.value} mode from {root}", use_emoji=emoji)
    logger = BuildLogger(
        console_sink(use_emoji=emoji, verbose=verbose),
        treat_warnings_as_errors=settings.treat_warnings_as_errors,
    )
    with requests.Session() as session, _interruptible() as user_token:
        orchestrator = Orchestrator(
            settings,
            runner=ProcessRunner(settings.working_directory),
            downloader=Downloader(session),
            logger=logger,
        )
        success = run_with_timeout(
            lambda token: orchestrator.run(token).success,
            user_token=user_token,
            timeout=settings.timeout_seconds,
            logger=logger,
        )

    if not success:
        fail("OpenAPI contract checks failed.", use_emoji=emoji)
        raise typer.Exit(code=1)
    ok("OpenAPI contract checks passed.", use_emoji=emoji)
    raise typer.Exit(code=0)


@contextmanager
def _interruptible() -> Iterator[CancellationToken]:
    """Yield a token cancelled by SIGINT, restoring the previous handler on exit."""

    source = CancellationSource()

    def _handle(signum: int, frame: object) -> None:
        source.cancel()

    installed = False
    previous: Any = None
    try:
        previous = signal.signal(signal.SIGINT, _handle)
        installed = True
    except ValueError:
        # signal handlers can only be installed from the main thread
        pass
    try:
        yield source.token
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous)
        source.close()


__all__ = ["run_command"]
