"""Shared behavior of git hosting adapters (tags and branches as versions)."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from common.errors import CompkgError, DownloadFailure, NoMatchingVersion
from common.http_client import get_json
from common.logging_utils import safe_url
from constants import Constants
from versioning import semver_ops
from versioning.models import Endpoint, InstallSource, UpdateData, VersionInfo
from .base import Repository

logger = logging.getLogger(__name__)


class GitRepository(Repository):
    """Repository whose versions are the tags and branches of a git project.

    Subclasses provide ``tags_url``, ``branches_url`` and ``get_download_url``.
    """

    default_owner_attr = ""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.owner = self.source or getattr(Constants, self.default_owner_attr, None) or self.pkg_name

    @property
    @abstractmethod
    def tags_url(self) -> str:
        """API URL listing the project's tags."""

    @property
    @abstractmethod
    def branches_url(self) -> str:
        """API URL listing the project's branches."""

    @abstractmethod
    def get_download_url(self, version: str) -> str:
        """Archive URL of a tag or branch."""

    def get_dep_endpoint(self) -> Optional[Endpoint]:
        return Endpoint(
            type=self.endpoint_type, value=self.owner, domain=self.domain, token=self.token
        )

    def get_install_source(self) -> InstallSource:
        path = f"{self.endpoint_type.value}:{self.owner}/{self.pkg_name}"
        if self.pkg_version:
            path += "#" + self.pkg_version
        return InstallSource(type=self.endpoint_type, path=path)

    def _get_paginated_results(self, url: str) -> List[Dict[str, Any]]:
        """Fetch all pages of a tags/branches listing.

        Raises:
            DownloadFailure: When the first page cannot be fetched.
        """
        per_page = Constants.REPO_API_PER_PAGE
        joiner = "&" if "?" in url else "?"
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_url = f"{url}{joiner}per_page={per_page}&page={page}"
            status, _, data = get_json(
                page_url, context=self.endpoint_type.value, headers=self.request_headers() or None
            )
            if status != 200 or data is None:
                if page == 1:
                    raise DownloadFailure(
                        f"fetch {safe_url(url)} failed with status {status}", url=url
                    )
                break
            if not isinstance(data, list):
                raise DownloadFailure(f"unexpected response from {safe_url(url)}", url=url)
            results.extend(data)
            if len(data) < per_page:
                break
            page += 1
        return results

    def _fetch_refs(self, url: str) -> List[VersionInfo]:
        return [
            VersionInfo(version=item.get("name"), url=self.get_download_url(item.get("name")))
            for item in self._get_paginated_results(url)
            if item.get("name")
        ]

    def fetch_available_tags(self) -> List[VersionInfo]:
        """Tags as versions, newest first; a leading ``v`` is dropped."""
        cached = self._cached("tags")
        if cached is not None:
            return cached
        tags = []
        for item in self._fetch_refs(self.tags_url):
            item.version = semver_ops.normalize_version(item.version)
            tags.append(item)
        result = semver_ops.sort_versions(tags, "version", descending=True)
        self._store("tags", result)
        return result

    def fetch_available_branches(self) -> List[VersionInfo]:
        """Branches as tags, the default branch first."""
        cached = self._cached("branch")
        if cached is not None:
            return cached
        branches = self._fetch_refs(self.branches_url)
        for item in branches:
            item.tag = item.version
        default_branch = Constants.DEFAULT_BRANCH
        result = sorted(branches, key=lambda item: item.version, reverse=True)
        result.sort(key=lambda item: item.version != default_branch)
        self._store("branch", result)
        return result

    def fetch_available_version(self, version: Optional[str] = None) -> VersionInfo:
        fetch_version = version if version is not None else self.pkg_version
        tags = self.fetch_available_tags()
        try:
            return self.get_fetch_version(fetch_version, tags, [])
        except NoMatchingVersion:
            logger.debug("no tag matches %s, try branches", fetch_version)
        return self.get_fetch_version(fetch_version, tags, self.fetch_available_branches())

    def fetch_all_versions(self) -> Dict[str, List[VersionInfo]]:
        return {
            "tags": self.fetch_available_tags(),
            "branches": self.fetch_available_branches(),
        }

    def fetch_update_data(self, current_version: Optional[str]) -> UpdateData:
        tags = self.fetch_available_tags()
        if not tags:
            raise CompkgError(f"no tags found for {self.owner}/{self.pkg_name}")
        latest_version = tags[0].version
        compat_version = semver_ops.max_satisfy_version(
            [item.version for item in tags], self.pkg_version
        )
        return UpdateData(
            latest_version=latest_version if latest_version != current_version else None,
            compat_version=compat_version if compat_version != current_version else None,
        )
