"""Exception types raised by the resolution and installation engine.

Only real failures are exceptions. Conflict warnings and blocked uninstalls
are outcomes recorded on the package node and logged.
"""
from __future__ import annotations

from typing import Iterable, Optional


class CompkgError(Exception):
    """Base class for errors raised by compkg."""


class SpecifierError(CompkgError, ValueError):
    """A package specifier cannot be parsed."""


class NoMatchingVersion(CompkgError):
    """No fetched version, tag or branch satisfies the requested range."""

    def __init__(
        self,
        name: Optional[str],
        requested: Optional[str],
        candidates: Iterable[str] = (),
        tags: Iterable[str] = (),
    ):
        self.name = name
        self.requested = requested
        self.candidates = list(candidates)
        self.tags = list(tags)
        pkg_info = name or ""
        if requested:
            pkg_info += "@" + requested
        self.reason = (
            f"No matched version for {pkg_info}, "
            f"candidates = {', '.join(self.candidates) or 'n/a'}, "
            f"tags = {', '.join(self.tags) or 'n/a'}"
        )
        super().__init__(self.reason)


class DownloadFailure(CompkgError):
    """Network or archive error while fetching a package."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class UserCancelled(CompkgError):
    """The operator declined a confirmation prompt.

    Carries the cancel marker: callers treat it as "do nothing", not as a failure.
    """

    cancel = True


class UninstallFailure(CompkgError):
    """An installed package could not be removed before being replaced."""


class ManifestWriteError(CompkgError, OSError):
    """The project manifest could not be written."""
