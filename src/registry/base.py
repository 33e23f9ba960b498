"""Base repository adapter shared by all endpoint types."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from common.errors import CompkgError, NoMatchingVersion
from common.fs_utils import remove_dir
from common.http_client import download_file
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants, EndpointType
from versioning import semver_ops
from versioning.models import DownloadResult, Endpoint, InstallSource, UpdateData, VersionInfo
from . import archive

logger = logging.getLogger(__name__)


class Repository(ABC):
    """A package source able to resolve, describe and download one package.

    Args:
        name: Package name.
        version: Requested version, range, tag or branch.
        source: Endpoint value (registry URL, owner, file path or URL).
        domain: Host for self-hosted git endpoints.
        token: Access token for git endpoints.
        resolved_url: Previously resolved download URL (from the lock section).
    """

    endpoint_type: EndpointType = None
    archive_extension: Optional[str] = None

    def __init__(
        self,
        name: Optional[str] = None,
        version: Optional[str] = None,
        source: Optional[str] = None,
        domain: Optional[str] = None,
        token: Optional[str] = None,
        resolved_url: Optional[str] = None,
    ):
        self.pkg_name = name
        self.pkg_version = version
        self.source = source
        self.domain = domain
        self.token = token
        self.resolved_url = resolved_url
        # per-run version lists, bound by the install session
        self.cache: Optional[Dict[str, Any]] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pkg_name!r}, {self.pkg_version!r})"

    def prefix(self) -> str:
        return self.endpoint_type.value + ":"

    def need_resolve(self) -> bool:
        """Whether a version must be resolved before download."""
        return True

    def get_dep_endpoint(self) -> Optional[Endpoint]:
        """Endpoint used for this package's own dependencies."""
        return Endpoint(type=self.endpoint_type)

    def get_install_source(self) -> InstallSource:
        return InstallSource(type=self.endpoint_type)

    def get_resolved_url(self) -> Optional[str]:
        return self.resolved_url

    def get_repository_url(self) -> Optional[str]:
        return None

    def request_headers(self) -> Dict[str, str]:
        return {}

    @abstractmethod
    def fetch_available_version(self, version: Optional[str] = None) -> VersionInfo:
        """Resolve ``version`` (the requested one when None) to a concrete version."""

    def fetch_version_metadata(self, info: VersionInfo) -> VersionInfo:
        return info

    def fetch_update_data(self, current_version: Optional[str]) -> UpdateData:
        raise CompkgError(f"update is not available for {self.endpoint_type.value} packages")

    def fetch_all_versions(self) -> Dict[str, List[VersionInfo]]:
        return {}

    def search(self, key: str, owner: Optional[str] = None) -> Dict[str, Any]:
        raise CompkgError(f"the search for {self.endpoint_type.value} repository is not available")

    def _cached(self, kind: str):
        if self.cache is None:
            return None
        return self.cache.get(f"{self.endpoint_type.value}_{self.pkg_name}_{kind}")

    def _store(self, kind: str, value) -> None:
        if self.cache is not None:
            self.cache[f"{self.endpoint_type.value}_{self.pkg_name}_{kind}"] = value

    def get_fetch_version(
        self,
        fetch_version: Optional[str],
        all_versions: Sequence[VersionInfo],
        all_tags: Sequence[VersionInfo],
    ) -> VersionInfo:
        """Pick the version to download from the candidate versions and tags.

        An exact version or tag name wins, then the greatest version satisfying
        ``fetch_version``. With no requested version the first (newest) version
        is taken, then the first tag.

        Raises:
            NoMatchingVersion: Listing the candidates and tags that were seen.
        """
        version_map = {item.version: item for item in all_versions}
        tag_map = {item.tag: item for item in all_tags}

        if fetch_version in version_map:
            return version_map[fetch_version]
        if fetch_version in tag_map:
            return tag_map[fetch_version]
        if fetch_version in Constants.LATEST_VERSION_TAGS and fetch_version != "*":
            fetch_version = None

        candidates = list(version_map.keys())
        found = None
        if fetch_version:
            logger.debug("fetch %s from %s", fetch_version, candidates)
            matched = semver_ops.max_satisfy_version(candidates, fetch_version)
            found = version_map.get(matched) if matched else None
        else:
            found = all_versions[0] if all_versions else None
            if found is None and all_tags:
                found = all_tags[0]

        if found is None:
            raise NoMatchingVersion(self.pkg_name, fetch_version, candidates, tag_map.keys())
        return found

    def download(self, info: VersionInfo) -> DownloadResult:
        """Download ``info.url`` into a temporary directory and extract it."""
        url = info.url or self.get_resolved_url()
        if not url:
            raise CompkgError("unknown download url")

        temp_dir = archive.make_temp_dir()
        extension = self.archive_extension or archive.file_extension(url) or ".tar.gz"
        target_file = os.path.join(temp_dir, "package" + extension)
        if is_debug_enabled(logger):
            logger.debug(
                "begin download package",
                extra=extra_context(
                    event="download",
                    component="repository",
                    action="GET",
                    target=safe_url(url),
                    package_name=self.pkg_name,
                ),
            )
        try:
            download_file(
                url,
                target_file,
                context=self.endpoint_type.value,
                headers=self.request_headers() or None,
                shasum=info.shasum,
            )
            package_dir = archive.extract(target_file, os.path.join(temp_dir, "package"), extension)
        except BaseException:
            remove_dir(temp_dir)
            raise
        self.resolved_url = url
        return DownloadResult(
            dir=package_dir,
            resolved_url=url,
            name=info.name,
            version=info.version,
            temp_dir=temp_dir,
        )
