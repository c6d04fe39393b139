# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Drive install, generation, comparison and linting for one run."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from ..cache.checksum import ChecksumDiffCache
from ..config import OrchestratorSettings
from ..core.cancellation import CancellationSource, CancellationToken, OperationCancelledError
from ..core.runtime.process import ProcessRunner, SubprocessExecutionError
from ..errors import ConfigurationError, OasgateError
from ..logging import BuildLogger
from ..reporting import CiReportRenderer
from ..ruleset import RulesetResolver
from ..tooling.descriptors import ToolDescriptor, ToolSet, default_descriptors
from ..tooling.download import Downloader
from ..tooling.installer import DependencyInstaller
from .differ import ContractDiffer
from .generator import SpecGenerator, update_specification_files
from .linter import SpectralLinter
from .modes import ModePlan, PipelineState, generation_enabled


@dataclass(frozen=True, slots=True)
class OrchestrationResult:
    """Outcome of a single orchestration run."""

    success: bool
    state: PipelineState
    history: tuple[PipelineState, ...] = ()
    warnings: tuple[str, ...] = ()
    reports: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class _InstallOutcome:
    executables: dict[str, Path]
    ruleset: Path


class Orchestrator:
    """Compose the pipeline steps selected by the operating mode."""

    def __init__(
        self,
        settings: OrchestratorSettings,
        *,
        runner: ProcessRunner,
        downloader: Downloader,
        logger: BuildLogger,
        installer: DependencyInstaller | None = None,
        descriptors: ToolSet | None = None,
        cache: ChecksumDiffCache | None = None,
        renderer: CiReportRenderer | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Create the orchestrator.

        Args:
            settings: Validated run settings.
            runner: Process runner bound to the working directory.
            downloader: Downloader shared by the installer and ruleset resolver.
            logger: Build logger collecting warnings and errors.
            installer: Installer override; built from the runner and downloader when omitted.
            descriptors: Tool descriptors; resolved for the current platform when omitted.
            cache: Checksum cache; rooted at the settings checksum directory when omitted.
            renderer: CI report renderer used after each lint report.
            environ: Environment consulted for the generation switch.
        """

        self._settings = settings
        self._runner = runner
        self._downloader = downloader
        self._logger = logger
        self._installer = installer or DependencyInstaller(
            downloader, runner, logger, install_attempts=settings.install_attempts
        )
        self._descriptors = descriptors
        self._cache = cache or ChecksumDiffCache(settings.checksum_directory)
        self._renderer = renderer or CiReportRenderer()
        self._environ = environ
        self._history: list[PipelineState] = []
        self._state = PipelineState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> PipelineState:
        """Return the current pipeline state."""

        with self._lock:
            return self._state

    def plan(self) -> ModePlan:
        """Return the step plan for the configured mode."""

        return ModePlan.for_mode(
            self._settings.mode,
            compare_code_against_spec=self._settings.compare_code_against_spec,
            generation_enabled=generation_enabled(self._environ),
        )

    def run(self, token: CancellationToken) -> OrchestrationResult:
        """Execute the pipeline.

        Tool, download and configuration failures are logged and reported as an
        unsuccessful result. Cancellation propagates to the caller.

        Args:
            token: Cancellation token bounding the run.

        Returns:
            OrchestrationResult: Terminal state, visited states, warnings and reports.
        """

        self._history.clear()
        self._transition(PipelineState.IDLE)
        reports: dict[str, str] = {}
        try:
            completed = self._execute(token, reports)
        except OperationCancelledError:
            self._transition(PipelineState.FAILED)
            raise
        except (OasgateError, SubprocessExecutionError, OSError) as exc:
            self._logger.error(str(exc))
            completed = False

        if not completed:
            self._transition(PipelineState.FAILED)
            return self._result(success=False, reports=reports)
        self._transition(PipelineState.DONE)
        success = not self._logger.has_errors
        if self._settings.treat_warnings_as_errors and self._logger.warnings:
            success = False
        return self._result(success=success, reports=reports)

    def _execute(self, token: CancellationToken, reports: dict[str, str]) -> bool:
        plan = self.plan()
        settings = self._settings
        baselines = list(settings.baseline_paths)
        if plan.requires_baselines and not self._baselines_exist(baselines):
            return False
        if plan.generate and settings.web_api_assembly_path is None:
            raise ConfigurationError("web_api_assembly_path is required to generate contracts")

        self._transition(PipelineState.INSTALLING_DEPENDENCIES)
        tools = self._descriptors or default_descriptors(settings.tools_root)
        outcome = self._install(plan, tools, token)

        if plan.generate:
            self._transition(PipelineState.GENERATING)
            generator = SpecGenerator(
                self._runner,
                self._logger,
                outcome.executables[tools.generator.name],
                tools.generator.install_dir,
                settings.working_directory / (settings.web_api_assembly_path or Path()),
            )
            generated = generator.generate_all(
                settings.document_names, token, timeout=settings.generation_timeout_seconds
            )
            if plan.overwrite_baselines:
                update_specification_files(baselines, generated, self._logger, token)
            if plan.compare:
                self._transition(PipelineState.COMPARING_AGAINST_BASELINE)
                differ = ContractDiffer(self._runner, self._logger, outcome.executables[tools.differ.name])
                differ.compare(baselines, generated, token)

        self._transition(PipelineState.LINTING)
        linter = SpectralLinter(
            self._runner,
            self._logger,
            outcome.executables[tools.linter.name],
            settings.reports_directory,
            self._cache,
            self._renderer,
        )
        reports.update(linter.lint(baselines, outcome.ruleset, token))
        return True

    def _baselines_exist(self, baselines: list[Path]) -> bool:
        for baseline in baselines:
            if baseline.is_file():
                continue
            self._logger.warning(
                f"The file '{baseline}' does not exist. If you are running this for the first time, "
                f"generated specifications can be found in '{self._settings.tools_root}' and used as "
                "base specifications. Copy the specification file(s) to your project directory and rebuild."
            )
            return False
        return True

    def _install(self, plan: ModePlan, tools: ToolSet, token: CancellationToken) -> _InstallOutcome:
        required: list[ToolDescriptor] = [tools.linter]
        if plan.install_generator:
            required.append(tools.generator)
        if plan.install_differ:
            required.append(tools.differ)
        resolver = RulesetResolver(
            self._downloader,
            self._logger,
            self._settings.profile,
            self._settings.ruleset_locator,
            work_directory=self._settings.rulesets_directory,
        )
        self._logger.info("Installing dependencies...")
        with CancellationSource.linked(token) as phase:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="oasgate-prepare") as executor:
                installs: Future[dict[str, Path]] = executor.submit(self._installer.install_all, required, phase.token)
                ruleset: Future[Path] = executor.submit(resolver.resolve, phase.token)
                try:
                    for future in as_completed((installs, ruleset)):
                        future.result()
                except BaseException:
                    phase.cancel()
                    raise
        return _InstallOutcome(executables=installs.result(), ruleset=ruleset.result())

    def _transition(self, state: PipelineState) -> None:
        with self._lock:
            self._state = state
            self._history.append(state)
        self._logger.debug(f"Pipeline state: {state.value}")

    def _result(self, *, success: bool, reports: Mapping[str, str]) -> OrchestrationResult:
        with self._lock:
            return OrchestrationResult(
                success=success,
                state=self._state,
                history=tuple(self._history),
                warnings=self._logger.warnings,
                reports=dict(reports),
            )


__all__ = ["OrchestrationResult", "Orchestrator"]
