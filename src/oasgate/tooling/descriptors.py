# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Descriptors for the external tools driven by the orchestrator."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from ..errors import InstallError

SPECTRAL_TOOL: Final[str] = "spectral"
OASDIFF_TOOL: Final[str] = "oasdiff"
SWAGGER_TOOL: Final[str] = "swagger"

# Pinned versions; bumping one invalidates the cached install for that tool.
SPECTRAL_VERSION: Final[str] = "6.14.2"
OASDIFF_VERSION: Final[str] = "1.9.2"
SWAGGER_VERSION: Final[str] = "6.5.0"

SPECTRAL_URL_FORMAT: Final[str] = "https://github.com/stoplightio/spectral/releases/download/v{version}/{filename}"
OASDIFF_URL_FORMAT: Final[str] = "https://github.com/Tufin/oasdiff/releases/download/v{version}/{filename}"
SWASHBUCKLE_PACKAGE: Final[str] = "Swashbuckle.AspNetCore.Cli"

_OS_RELEASE: Final[Path] = Path("/etc/os-release")


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Resolved description of one external tool for the current platform."""

    name: str
    version: str
    install_dir: Path
    artifact_filename: str
    executable_name: str
    url: str | None = None
    archive: bool = False
    install_command: tuple[str, ...] | None = None

    @property
    def artifact_path(self) -> Path:
        """Return where the downloaded artifact is stored."""

        return self.install_dir / self.artifact_filename

    @property
    def executable_path(self) -> Path:
        """Return the path of the executable invoked by the pipeline."""

        return self.install_dir / self.executable_name


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """Operating system and architecture tokens used in artifact names."""

    system: str
    architecture: str
    alpine: bool = False

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"


def tool_directory(tools_root: Path, name: str, version: str) -> Path:
    """Return the versioned install directory for ``name``.

    Args:
        tools_root: Root directory holding every installed tool.
        name: Tool name.
        version: Pinned tool version.

    Returns:
        Path: ``<tools_root>/<name>/<version>``.
    """

    return tools_root / name / version


def detect_platform() -> PlatformInfo:
    """Return the platform tokens for the running interpreter.

    Returns:
        PlatformInfo: Normalised operating system and architecture.

    Raises:
        InstallError: When the operating system or architecture is unsupported.
    """

    system = platform.system().lower()
    if system == "darwin":
        system = "macos"
    if system not in {"linux", "macos", "windows"}:
        raise InstallError("Unknown operating system encountered")
    architecture = _normalize_architecture(platform.machine())
    alpine = False
    if system == "linux" and _OS_RELEASE.is_file():
        alpine = "Alpine Linux" in _OS_RELEASE.read_text(encoding="utf-8", errors="ignore")
    return PlatformInfo(system=system, architecture=architecture, alpine=alpine)


def _normalize_architecture(machine: str) -> str:
    """Return normalised architecture identifier derived from ``machine``.

    Args:
        machine: Raw architecture string reported by the platform.

    Returns:
        str: ``x64`` or ``arm64``.

    Raises:
        InstallError: For any other processor architecture.
    """

    normalized = machine.lower()
    if normalized in {"x86_64", "amd64", "x64"}:
        return "x64"
    if normalized in {"aarch64", "arm64"}:
        return "arm64"
    raise InstallError("Unknown processor architecture encountered")


def spectral_descriptor(tools_root: Path, info: PlatformInfo) -> ToolDescriptor:
    """Return the Spectral linter descriptor for ``info``."""

    if info.is_windows:
        filename = "spectral.exe"
    else:
        system = "alpine" if info.alpine else info.system
        filename = f"spectral-{system}-{info.architecture}"
    return ToolDescriptor(
        name=SPECTRAL_TOOL,
        version=SPECTRAL_VERSION,
        install_dir=tool_directory(tools_root, SPECTRAL_TOOL, SPECTRAL_VERSION),
        artifact_filename=filename,
        executable_name=filename,
        url=SPECTRAL_URL_FORMAT.format(version=SPECTRAL_VERSION, filename=filename),
    )


def oasdiff_descriptor(tools_root: Path, info: PlatformInfo) -> ToolDescriptor:
    """Return the oasdiff descriptor; releases ship as ``tar.gz`` archives."""

    if info.system == "macos":
        filename = f"oasdiff_{OASDIFF_VERSION}_darwin_all.tar.gz"
    else:
        architecture = "amd64" if info.architecture == "x64" else info.architecture
        filename = f"oasdiff_{OASDIFF_VERSION}_{info.system}_{architecture}.tar.gz"
    return ToolDescriptor(
        name=OASDIFF_TOOL,
        version=OASDIFF_VERSION,
        install_dir=tool_directory(tools_root, OASDIFF_TOOL, OASDIFF_VERSION),
        artifact_filename=filename,
        executable_name="oasdiff.exe" if info.is_windows else "oasdiff",
        url=OASDIFF_URL_FORMAT.format(version=OASDIFF_VERSION, filename=filename),
        archive=True,
    )


def swagger_descriptor(tools_root: Path, info: PlatformInfo) -> ToolDescriptor:
    """Return the Swashbuckle CLI descriptor, installed as a ``dotnet`` tool."""

    install_dir = tool_directory(tools_root, SWAGGER_TOOL, SWAGGER_VERSION)
    executable = "swagger.exe" if info.is_windows else "swagger"
    return ToolDescriptor(
        name=SWAGGER_TOOL,
        version=SWAGGER_VERSION,
        install_dir=install_dir,
        artifact_filename=executable,
        executable_name=executable,
        install_command=(
            "dotnet",
            "tool",
            "update",
            SWASHBUCKLE_PACKAGE,
            "--tool-path",
            str(install_dir),
            "--version",
            SWAGGER_VERSION,
        ),
    )


@dataclass(frozen=True, slots=True)
class ToolSet:
    """Descriptors for every tool the orchestrator may need."""

    linter: ToolDescriptor
    differ: ToolDescriptor
    generator: ToolDescriptor


def default_descriptors(tools_root: Path, info: PlatformInfo | None = None) -> ToolSet:
    """Resolve descriptors for the lint, diff and spec-generation tools.

    Args:
        tools_root: Root directory holding every installed tool.
        info: Platform tokens; detected from the interpreter when omitted.

    Returns:
        ToolSet: Descriptors resolved for the platform.
    """

    resolved = info or detect_platform()
    return ToolSet(
        linter=spectral_descriptor(tools_root, resolved),
        differ=oasdiff_descriptor(tools_root, resolved),
        generator=swagger_descriptor(tools_root, resolved),
    )


__all__ = [
    "OASDIFF_TOOL",
    "PlatformInfo",
    "SPECTRAL_TOOL",
    "SWAGGER_TOOL",
    "ToolDescriptor",
    "ToolSet",
    "default_descriptors",
    "detect_platform",
    "oasdiff_descriptor",
    "spectral_descriptor",
    "swagger_descriptor",
    "tool_directory",
]
