# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Mode plans and pipeline states driving the orchestrator."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Final

from ..config import OperatingMode

DISABLE_GENERATION_ENV: Final[str] = "OASGATE_DISABLE_SPECGEN"


class PipelineState(str, Enum):
    """Enumerate the states visited by a single orchestration run."""

    IDLE = "idle"
    INSTALLING_DEPENDENCIES = "installing_dependencies"
    GENERATING = "generating"
    COMPARING_AGAINST_BASELINE = "comparing_against_baseline"
    LINTING = "linting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` for ``DONE`` and ``FAILED``."""

        return self in {PipelineState.DONE, PipelineState.FAILED}


@dataclass(frozen=True, slots=True)
class ModePlan:
    """Steps enabled for a run, derived from the operating mode."""

    mode: OperatingMode
    requires_baselines: bool
    install_generator: bool
    install_differ: bool
    generate: bool
    overwrite_baselines: bool
    compare: bool

    @classmethod
    def for_mode(
        cls,
        mode: OperatingMode,
        *,
        compare_code_against_spec: bool = False,
        generation_enabled: bool = True,
    ) -> ModePlan:
        """Return the plan for ``mode``.

        Generate mode regenerates and overwrites the baselines unless generation
        is disabled. Validate mode requires existing baselines and only generates
        when a comparison against the code was requested.

        Args:
            mode: Operating mode selected by the caller.
            compare_code_against_spec: Compare generated documents with baselines
                in validate mode.
            generation_enabled: Whether generate mode may run the generator.

        Returns:
            ModePlan: Immutable description of the enabled steps.
        """

        if mode is OperatingMode.GENERATE:
            return cls(
                mode=mode,
                requires_baselines=False,
                install_generator=generation_enabled,
                install_differ=False,
                generate=generation_enabled,
                overwrite_baselines=generation_enabled,
                compare=False,
            )
        return cls(
            mode=mode,
            requires_baselines=True,
            install_generator=compare_code_against_spec,
            install_differ=compare_code_against_spec,
            generate=compare_code_against_spec,
            overwrite_baselines=False,
            compare=compare_code_against_spec,
        )


def generation_enabled(environ: Mapping[str, str] | None = None) -> bool:
    """Return ``False`` when generation was disabled through the environment."""

    source = os.environ if environ is None else environ
    return source.get(DISABLE_GENERATION_ENV, "").strip().lower() != "true"


__all__ = ["DISABLE_GENERATION_ENV", "ModePlan", "PipelineState", "generation_enabled"]
