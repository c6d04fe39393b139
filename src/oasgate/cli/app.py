# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands."""

from __future__ import annotations

import typer

from .run import run_command

app = typer.Typer(
    help="Validate or generate OpenAPI contracts with Spectral, oasdiff and Swashbuckle.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """OpenAPI contract gate."""


app.command("run")(run_command)

__all__ = ["app"]
