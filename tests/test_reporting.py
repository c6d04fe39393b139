# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for CI report attachments."""

from __future__ import annotations

from pathlib import Path

from oasgate.reporting import CiReportRenderer


def test_attachment_emitted_under_azure_pipelines() -> None:
    lines: list[str] = []
    renderer = CiReportRenderer({"AGENT_NAME": "Hosted Agent"}, emit=lines.append)

    assert renderer.attach(Path("reports/spectral-v1.txt"))
    assert lines == [
        "##vso[task.addattachment type=Distributedtask.Core.Summary;name=Spectral results;]reports/spectral-v1.txt"
    ]


def test_collection_uri_enables_attachment() -> None:
    lines: list[str] = []
    renderer = CiReportRenderer({"SYSTEM_TEAMFOUNDATIONCOLLECTIONURI": "https://dev.azure.com/x/"}, emit=lines.append)

    assert renderer.enabled


def test_no_attachment_outside_ci() -> None:
    lines: list[str] = []
    renderer = CiReportRenderer({}, emit=lines.append)

    assert not renderer.attach(Path("report.txt"))
    assert lines == []
