# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Content checksums recorded after each successful lint run."""

from __future__ import annotations

import hashlib
import re
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Final

CHECKSUM_SUFFIX: Final[str] = ".checksum"
RULESET_ITEM_NAME: Final[str] = "spectral-ruleset-checksum"
MISSING_CHECKSUM: Final[str] = ""
_READ_CHUNK_SIZE: Final[int] = 1 << 16
_UNSAFE_ITEM_CHARACTERS: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]")


def compute_file_checksum(path: Path) -> str:
    """Return the lower-case hex SHA-256 digest of ``path``.

    Args:
        path: File whose bytes are hashed.

    Returns:
        str: Hex digest, or an empty string when ``path`` does not exist.
    """

    if not path.is_file():
        return MISSING_CHECKSUM
    hasher = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_READ_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def item_name_for(path: Path) -> str:
    """Return the sanitized checksum item name for a tracked document.

    Args:
        path: Tracked document path.

    Returns:
        str: File stem with characters outside ``[A-Za-z0-9._-]`` replaced.
    """

    return _UNSAFE_ITEM_CHARACTERS.sub("_", path.stem) or "_"


def _checksums_match(previous: str, current: str) -> bool:
    return previous.strip().casefold() == current.strip().casefold()


class ChecksumDiffCache:
    """Decide whether the ruleset or documents changed since the last snapshot.

    Each tracked item is stored as ``<item>.checksum`` inside ``directory``. A
    missing record or a missing file is always reported as changed.
    """

    def __init__(self, directory: Path) -> None:
        """Initialise the cache rooted at ``directory``.

        Args:
            directory: Directory holding one checksum file per tracked item.
        """

        self._dir = directory

    @property
    def directory(self) -> Path:
        """Return the snapshot directory."""

        return self._dir

    def has_ruleset_changed(self, ruleset_path: Path) -> bool:
        """Return ``True`` when the ruleset differs from the last snapshot.

        Args:
            ruleset_path: Local ruleset file used for linting.

        Returns:
            bool: ``True`` when the ruleset is missing, unrecorded or modified.
        """

        current = compute_file_checksum(ruleset_path)
        if current == MISSING_CHECKSUM:
            return True
        return not _checksums_match(self._read_item(RULESET_ITEM_NAME), current)

    def has_any_document_changed(self, document_paths: Sequence[Path]) -> bool:
        """Return ``True`` when any tracked document differs from the snapshot.

        A different set of tracked documents than the one recorded also counts
        as a change.

        Args:
            document_paths: Documents about to be linted.

        Returns:
            bool: ``True`` when a re-run is required.
        """

        current_items = {item_name_for(path) for path in document_paths}
        if current_items != self._recorded_document_items():
            return True
        for path in document_paths:
            current = compute_file_checksum(path)
            if current == MISSING_CHECKSUM:
                return True
            if not _checksums_match(self._read_item(item_name_for(path)), current):
                return True
        return False

    def save_execution_snapshot(self, ruleset_path: Path, document_paths: Sequence[Path]) -> None:
        """Replace the stored snapshot with checksums of the current inputs.

        Args:
            ruleset_path: Ruleset used for the completed run.
            document_paths: Documents linted by the completed run.
        """

        if self._dir.exists():
            shutil.rmtree(self._dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._write_item(RULESET_ITEM_NAME, compute_file_checksum(ruleset_path))
        for path in document_paths:
            self._write_item(item_name_for(path), compute_file_checksum(path))

    def _item_path(self, item_name: str) -> Path:
        return self._dir / f"{item_name}{CHECKSUM_SUFFIX}"

    def _read_item(self, item_name: str) -> str:
        path = self._item_path(item_name)
        if not path.is_file():
            return MISSING_CHECKSUM
        return path.read_text(encoding="utf-8")

    def _write_item(self, item_name: str, checksum: str) -> None:
        self._item_path(item_name).write_text(checksum, encoding="utf-8")

    def _recorded_document_items(self) -> set[str]:
        if not self._dir.is_dir():
            return set()
        return {
            path.name.removesuffix(CHECKSUM_SUFFIX)
            for path in self._dir.glob(f"*{CHECKSUM_SUFFIX}")
            if path.name != f"{RULESET_ITEM_NAME}{CHECKSUM_SUFFIX}"
        }


__all__ = [
    "CHECKSUM_SUFFIX",
    "ChecksumDiffCache",
    "MISSING_CHECKSUM",
    "RULESET_ITEM_NAME",
    "compute_file_checksum",
    "item_name_for",
]
