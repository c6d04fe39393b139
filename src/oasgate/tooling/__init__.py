# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool descriptors, downloads and installation."""

from .descriptors import ToolDescriptor, ToolSet, default_descriptors
from .download import Downloader, RetryPolicy
from .installer import DependencyInstaller

__all__ = [
    "DependencyInstaller",
    "Downloader",
    "RetryPolicy",
    "ToolDescriptor",
    "ToolSet",
    "default_descriptors",
]
