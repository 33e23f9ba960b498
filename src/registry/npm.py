"""npm registry adapter."""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from common.http_client import fetch_json
from constants import Constants, EndpointType
from versioning import semver_ops
from versioning.models import UpdateData, VersionInfo
from .base import Repository

logger = logging.getLogger(__name__)


class NpmRepository(Repository):
    """Packages published to an npm-compatible registry."""

    endpoint_type = EndpointType.NPM

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.registry = (self.source or self.default_registry()).rstrip("/")

    @classmethod
    def default_registry(cls) -> str:
        return Constants.REGISTRY_URL_NPM

    def _package_url(self, *parts: str) -> str:
        segments = [quote(self.pkg_name, safe="@")] + [quote(p, safe="") for p in parts]
        return self.registry + "/" + "/".join(segments)

    def get_repository_url(self) -> Optional[str]:
        return self._package_url()

    def fetch_packument(self) -> Dict[str, Any]:
        return fetch_json(self._package_url(), context=self.endpoint_type.value)

    @staticmethod
    def available_versions(data: Dict[str, Any]) -> Tuple[List[VersionInfo], List[VersionInfo]]:
        """Return (versions, tags), both newest first."""
        versions = [VersionInfo(version=v) for v in (data.get("versions") or {})]
        tags = [
            VersionInfo(tag=tag, version=version)
            for tag, version in (data.get("dist-tags") or {}).items()
        ]
        return (
            semver_ops.sort_versions(versions, "version", descending=True),
            semver_ops.sort_versions(tags, "version", descending=True),
        )

    def fetch_available_version(self, version: Optional[str] = None) -> VersionInfo:
        fetch_version = version if version is not None else self.pkg_version
        logger.debug("fetch the version %s of %s to download...", fetch_version, self.pkg_name)
        versions, tags = self.available_versions(self.fetch_packument())
        return self.get_fetch_version(fetch_version, versions, tags)

    def fetch_version_metadata(self, info: VersionInfo) -> VersionInfo:
        logger.debug("fetch %s@%s meta data...", self.pkg_name, info.version)
        data = fetch_json(self._package_url(info.version), context=self.endpoint_type.value)
        dist = data.get("dist") or {}
        return VersionInfo(
            name=data.get("name"),
            version=data.get("version"),
            url=dist.get("tarball"),
            shasum=dist.get("shasum"),
        )

    def fetch_all_versions(self) -> Dict[str, List[VersionInfo]]:
        versions, tags = self.available_versions(self.fetch_packument())
        return {"versions": versions, "tags": tags}

    def fetch_update_data(self, current_version: Optional[str]) -> UpdateData:
        data = self.fetch_packument()
        versions, tags = self.available_versions(data)

        latest = versions[0] if versions else (tags[0] if tags else None)
        latest_version = latest.version if latest else None

        tag_map = data.get("dist-tags") or {}
        if self.pkg_version in tag_map:
            compat_version = tag_map[self.pkg_version]
        else:
            compat_version = semver_ops.max_satisfy_version(
                list((data.get("versions") or {}).keys()), self.pkg_version
            )

        return UpdateData(
            latest_version=latest_version if latest_version != current_version else None,
            compat_version=compat_version if compat_version != current_version else None,
        )

    def search(self, key: str, owner: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.registry}/-/v1/search?text={quote(key)}&size=20"
        data = fetch_json(url, context=self.endpoint_type.value)
        items = []
        for entry in data.get("objects") or []:
            package = entry.get("package") or {}
            links = package.get("links") or {}
            items.append({
                "name": package.get("name"),
                "description": package.get("description"),
                "version": package.get("version"),
                "time": (package.get("date") or "")[:10],
                "url": links.get("repository") or links.get("npm"),
            })
        return {"count": data.get("total", len(items)), "list": items}
