# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Provide the checksum snapshot cache used to skip redundant lint runs."""

from .checksum import RULESET_ITEM_NAME, ChecksumDiffCache, compute_file_checksum, item_name_for

__all__ = ["RULESET_ITEM_NAME", "ChecksumDiffCache", "compute_file_checksum", "item_name_for"]
