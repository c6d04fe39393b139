# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Invocation settings for the contract orchestrator."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .cache.checksum import RULESET_ITEM_NAME, item_name_for
from .errors import ConfigurationError
from .ruleset import SUPPORTED_PROFILES, is_remote_locator

PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "oasgate"
DEFAULT_TOOLS_DIRECTORY: Final[str] = "openapi-tools"
DEFAULT_PROFILE: Final[str] = "backend"
REPORTS_DIRECTORY_NAME: Final[str] = "reports"
CHECKSUM_DIRECTORY_NAME: Final[str] = "checksums"
RULESETS_DIRECTORY_NAME: Final[str] = "rulesets"


class OperatingMode(str, Enum):
    """Enumerate orchestration modes."""

    GENERATE = "generate"
    VALIDATE = "validate"

    @classmethod
    def from_raw(cls, raw: str | OperatingMode) -> OperatingMode:
        """Return the mode matching ``raw``, accepting legacy aliases.

        Args:
            raw: Mode name such as ``generate``, ``CodeFirst`` or ``ContractFirst``.

        Returns:
            OperatingMode: Matching mode.

        Raises:
            ConfigurationError: When ``raw`` does not name a mode.
        """

        if isinstance(raw, OperatingMode):
            return raw
        key = raw.strip().casefold()
        try:
            return _MODE_ALIASES[key]
        except KeyError:
            raise ConfigurationError(f"Invalid operating mode '{raw}'") from None


_MODE_ALIASES: Final[dict[str, OperatingMode]] = {
    "generate": OperatingMode.GENERATE,
    "codefirst": OperatingMode.GENERATE,
    "generatecontract": OperatingMode.GENERATE,
    "validate": OperatingMode.VALIDATE,
    "contractfirst": OperatingMode.VALIDATE,
    "validatecontract": OperatingMode.VALIDATE,
}


class OrchestratorSettings(BaseModel):
    """Validated inputs for a single orchestration run."""

    model_config = ConfigDict(frozen=True)

    mode: OperatingMode = OperatingMode.VALIDATE
    document_names: tuple[str, ...] = ()
    specification_files: tuple[Path, ...] = ()
    ruleset: str | None = None
    profile: str = DEFAULT_PROFILE
    compare_code_against_spec: bool = False
    treat_warnings_as_errors: bool = False
    tools_directory: Path = Path(DEFAULT_TOOLS_DIRECTORY)
    web_api_assembly_path: Path | None = None
    timeout_seconds: float = Field(default=300.0, gt=0)
    generation_timeout_seconds: float = Field(default=60.0, gt=0)
    install_attempts: int = Field(default=2, ge=1)
    working_directory: Path = Field(default_factory=Path.cwd)

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> OperatingMode:
        if isinstance(value, str):
            try:
                return OperatingMode.from_raw(value)
            except ConfigurationError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @field_validator("profile", mode="before")
    @classmethod
    def _coerce_profile(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized not in SUPPORTED_PROFILES:
                raise ValueError(f"Invalid ruleset profile '{value}'")
            return normalized
        return value

    @field_validator("ruleset", mode="before")
    @classmethod
    def _blank_ruleset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_pairing(self) -> OrchestratorSettings:
        if len(self.document_names) != len(self.specification_files):
            raise ValueError(
                "document_names and specification_files must have the same length "
                f"({len(self.document_names)} != {len(self.specification_files)})"
            )
        return self

    @model_validator(mode="after")
    def _check_checksum_items(self) -> OrchestratorSettings:
        # one checksum record per file stem
        seen: dict[str, Path] = {}
        for path in self.specification_files:
            item = item_name_for(path)
            if item == RULESET_ITEM_NAME:
                raise ValueError(f"specification file {path} uses the reserved name '{RULESET_ITEM_NAME}'")
            if item in seen:
                raise ValueError(f"specification files {seen[item]} and {path} share the checksum name '{item}'")
            seen[item] = path
        return self

    @property
    def tools_root(self) -> Path:
        """Return the tools directory anchored at the working directory."""

        return self.working_directory / self.tools_directory

    @property
    def baseline_paths(self) -> tuple[Path, ...]:
        """Return the specification files anchored at the working directory."""

        return tuple(self.working_directory / path for path in self.specification_files)

    @property
    def reports_directory(self) -> Path:
        """Return the directory holding lint reports."""

        return self.tools_root / REPORTS_DIRECTORY_NAME

    @property
    def checksum_directory(self) -> Path:
        """Return the directory holding checksum snapshot records."""

        return self.tools_root / CHECKSUM_DIRECTORY_NAME

    @property
    def rulesets_directory(self) -> Path:
        """Return the directory receiving downloaded and extended rulesets."""

        return self.tools_root / RULESETS_DIRECTORY_NAME

    @property
    def ruleset_locator(self) -> str | None:
        """Return the ruleset URL, or the local ruleset anchored at the working directory."""

        if self.ruleset is None or is_remote_locator(self.ruleset):
            return self.ruleset
        return str(self.working_directory / self.ruleset)

    @classmethod
    def build(cls, **values: Any) -> OrchestratorSettings:
        """Validate ``values`` and return settings.

        Raises:
            ConfigurationError: When validation fails.
        """

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(_format_validation_error(exc)) from exc


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "settings"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid configuration: " + "; ".join(parts)


def load_pyproject_settings(path: Path) -> dict[str, Any]:
    """Return the ``[tool.oasgate]`` table of ``path`` with normalised keys.

    Args:
        path: ``pyproject.toml`` location; a missing file yields ``{}``.

    Returns:
        dict[str, Any]: Raw values keyed by setting name (dashes become underscores).

    Raises:
        ConfigurationError: When the file is not valid TOML or the section is not a table.
    """

    if not path.is_file():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc
    tool_section = data.get(PYPROJECT_TOOL_KEY)
    if not isinstance(tool_section, Mapping):
        return {}
    section = tool_section.get(PYPROJECT_SECTION_KEY)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"[tool.oasgate] in {path} must be a table")
    return _resolve_relative_paths({key.replace("-", "_"): value for key, value in section.items()}, path.parent)


_PATH_KEYS: Final[frozenset[str]] = frozenset({"tools_directory", "web_api_assembly_path", "working_directory"})


def _resolve_relative_paths(values: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    resolved = dict(values)
    for key in _PATH_KEYS & resolved.keys():
        candidate = Path(str(resolved[key]))
        resolved[key] = candidate if candidate.is_absolute() else base_dir / candidate
    ruleset = resolved.get("ruleset")
    if isinstance(ruleset, str) and ruleset.strip() and not is_remote_locator(ruleset):
        candidate = Path(ruleset)
        resolved["ruleset"] = str(candidate if candidate.is_absolute() else base_dir / candidate)
    files = resolved.get("specification_files")
    if isinstance(files, list):
        resolved["specification_files"] = [
            Path(str(item)) if Path(str(item)).is_absolute() else base_dir / str(item) for item in files
        ]
    return resolved


__all__ = [
    "OperatingMode",
    "OrchestratorSettings",
    "load_pyproject_settings",
]
