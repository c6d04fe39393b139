# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI tests for the run command."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from oasgate.cli.app import app
from oasgate.config import OperatingMode, OrchestratorSettings
from oasgate.core.cancellation import CancellationToken
from oasgate.orchestration.modes import PipelineState
from oasgate.orchestration.orchestrator import OrchestrationResult


class RecordingOrchestrator:
    """Stand-in recording the settings it was built with."""

    instances: list[RecordingOrchestrator] = []
    success = True

    def __init__(self, settings: OrchestratorSettings, **collaborators) -> None:
        self.settings = settings
        self.collaborators = collaborators
        type(self).instances.append(self)

    def run(self, token: CancellationToken) -> OrchestrationResult:
        state = PipelineState.DONE if self.success else PipelineState.FAILED
        return OrchestrationResult(success=self.success, state=state)


def install_fake(monkeypatch, *, success: bool) -> type[RecordingOrchestrator]:
    fake = type("FakeOrchestrator", (RecordingOrchestrator,), {"instances": [], "success": success})
    monkeypatch.setattr("oasgate.cli.run.Orchestrator", fake)
    return fake


def test_run_passes_settings(monkeypatch, tmp_path: Path) -> None:
    fake = install_fake(monkeypatch, success=True)

    result = CliRunner().invoke(
        app,
        [
            "run",
            "--mode",
            "ContractFirst",
            "--document",
            "v1",
            "--spec-file",
            "openapi-v1.yaml",
            "--compare",
            "--warnings-as-errors",
            "--tools-dir",
            "tools",
            "--working-dir",
            str(tmp_path),
            "--no-emoji",
        ],
    )

    assert result.exit_code == 0, result.stdout
    settings = fake.instances[0].settings
    assert settings.mode is OperatingMode.VALIDATE
    assert settings.document_names == ("v1",)
    assert settings.baseline_paths == (tmp_path.resolve() / "openapi-v1.yaml",)
    assert settings.compare_code_against_spec
    assert settings.treat_warnings_as_errors
    assert "OpenAPI contract checks passed." in result.stdout


def test_run_failure_exit_code(monkeypatch, tmp_path: Path) -> None:
    install_fake(monkeypatch, success=False)

    result = CliRunner().invoke(app, ["run", "--working-dir", str(tmp_path), "--no-emoji"])

    assert result.exit_code == 1
    assert "OpenAPI contract checks failed." in result.stdout


def test_configuration_error_stops_before_work(monkeypatch, tmp_path: Path) -> None:
    fake = install_fake(monkeypatch, success=True)

    result = CliRunner().invoke(
        app,
        ["run", "--document", "v1", "--document", "v2", "--spec-file", "a.yaml", "--working-dir", str(tmp_path)],
    )

    assert result.exit_code == 1
    assert fake.instances == []
    assert "same length" in result.stdout


def test_pyproject_defaults_are_overridden(monkeypatch, tmp_path: Path) -> None:
    fake = install_fake(monkeypatch, success=True)
    (tmp_path / "pyproject.toml").write_text(
        '[tool.oasgate]\nmode = "GenerateContract"\nprofile = "frontend"\ninstall-attempts = 4\n',
        encoding="utf-8",
    )

    result = CliRunner().invoke(app, ["run", "--working-dir", str(tmp_path), "--profile", "backend"])

    assert result.exit_code == 0, result.stdout
    settings = fake.instances[0].settings
    assert settings.mode is OperatingMode.GENERATE
    assert settings.profile == "backend"
    assert settings.install_attempts == 4
