# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve the Spectral ruleset locator into a local file."""

from __future__ import annotations

from pathlib import Path
from typing import Final
from urllib.parse import urlparse

import yaml

from .core.cancellation import CancellationToken
from .errors import ConfigurationError, DownloadError
from .logging import BuildLogger
from .tooling.download import Downloader

RULESET_GUIDELINES_VERSION: Final[str] = "0.8.0"
RULESET_URL_FORMAT: Final[str] = (
    "https://raw.githubusercontent.com/gsoft-inc/wl-api-guidelines/{version}/.spectral.{profile}.yaml"
)
SUPPORTED_PROFILES: Final[frozenset[str]] = frozenset({"backend", "frontend"})
_REMOTE_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
RESOLVED_RULESET_NAME: Final[str] = "ruleset.yaml"


def profile_ruleset_url(profile: str) -> str:
    """Return the published ruleset URL for ``profile``.

    Raises:
        ConfigurationError: When ``profile`` is not a supported profile.
    """

    if profile not in SUPPORTED_PROFILES:
        choices = ", ".join(sorted(SUPPORTED_PROFILES))
        raise ConfigurationError(f"Invalid ruleset profile '{profile}'; expected one of: {choices}")
    return RULESET_URL_FORMAT.format(version=RULESET_GUIDELINES_VERSION, profile=profile)


def is_remote_locator(locator: str) -> bool:
    """Return ``True`` when ``locator`` is an ``http`` or ``https`` URL."""

    return urlparse(locator).scheme.lower() in _REMOTE_SCHEMES


def ruleset_has_extends(path: Path) -> bool:
    """Return ``True`` when the first YAML document in ``path`` has a top-level ``extends`` key.

    Raises:
        ConfigurationError: When the file is not valid UTF-8 YAML.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            document = next(iter(yaml.safe_load_all(handle)), None)
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Ruleset {path} is not valid YAML: {exc}") from exc
    return isinstance(document, dict) and "extends" in document


class RulesetResolver:
    """Turn a profile, remote URL or local file into a ruleset the linter can read."""

    def __init__(
        self,
        downloader: Downloader,
        logger: BuildLogger,
        profile: str,
        ruleset: str | None = None,
        *,
        work_directory: Path,
    ) -> None:
        """Create the resolver.

        Args:
            downloader: Downloader used for remote rulesets.
            logger: Build logger receiving progress messages.
            profile: Published profile extended or used by default.
            ruleset: Optional URL or local path overriding the profile.
            work_directory: Directory receiving downloaded and extended rulesets.
        """

        self._downloader = downloader
        self._logger = logger
        self._profile_url = profile_ruleset_url(profile)
        self._locator = ruleset if ruleset else self._profile_url
        self._work_dir = work_directory

    @property
    def locator(self) -> str:
        """Return the locator this resolver will fetch or read."""

        return self._locator

    @property
    def output_path(self) -> Path:
        """Return the file written for downloaded or extended rulesets."""

        return self._work_dir / RESOLVED_RULESET_NAME

    def resolve(self, token: CancellationToken) -> Path:
        """Return a local path to the ruleset.

        Remote rulesets are downloaded into the work directory, replacing the
        previous copy. Local rulesets without an ``extends`` key are copied there
        and made to extend the profile.

        Raises:
            ConfigurationError: When a local ruleset does not exist or cannot be decoded.
            DownloadError: When a remote ruleset cannot be fetched.
        """

        token.raise_if_cancelled()
        if is_remote_locator(self._locator):
            return self._download(token)

        local = Path(self._locator)
        if not local.is_file():
            raise ConfigurationError(f"Ruleset file {local} does not exist")
        if ruleset_has_extends(local):
            return local
        self._logger.info("Extending ruleset with the published guidelines.")
        return self._extend(local)

    def _download(self, token: CancellationToken) -> Path:
        self._logger.info(f"Downloading ruleset {self._locator}")
        destination = self._fresh_output()
        try:
            self._downloader.download(self._locator, destination, token)
        except DownloadError as exc:
            self._logger.warning(str(exc))
            raise
        self._logger.debug("Ruleset download completed.")
        return destination

    def _extend(self, source: Path) -> Path:
        try:
            body = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ConfigurationError(f"Ruleset {source} is not valid UTF-8: {exc}") from exc
        destination = self._fresh_output()
        destination.write_text(f"extends: [{self._profile_url}]\n{body}", encoding="utf-8")
        return destination

    def _fresh_output(self) -> Path:
        self._work_dir.mkdir(parents=True, exist_ok=True)
        destination = self.output_path
        destination.unlink(missing_ok=True)
        return destination


__all__ = [
    "RESOLVED_RULESET_NAME",
    "RULESET_URL_FORMAT",
    "RulesetResolver",
    "SUPPORTED_PROFILES",
    "is_remote_locator",
    "profile_ruleset_url",
    "ruleset_has_extends",
]
