"""Adapter for a package archive addressed by a plain URL."""

import os
from typing import Optional
from urllib.parse import urlparse

from constants import EndpointType
from versioning.models import Endpoint, InstallSource, VersionInfo
from .base import Repository


class UrlRepository(Repository):
    endpoint_type = EndpointType.URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.url = self.source
        if self.url and not self.pkg_name:
            basename = os.path.basename(urlparse(self.url).path or "")
            for suffix in (".tar.gz", ".tgz", ".zip", ".tar"):
                if basename.endswith(suffix):
                    basename = basename[: -len(suffix)]
                    break
            self.pkg_name = basename or None

    def need_resolve(self) -> bool:
        return False

    def get_dep_endpoint(self) -> Optional[Endpoint]:
        return None

    def get_install_source(self) -> InstallSource:
        return InstallSource(type=self.endpoint_type, path=self.url)

    def get_resolved_url(self) -> Optional[str]:
        return self.resolved_url or self.url

    def fetch_available_version(self, version: Optional[str] = None) -> VersionInfo:
        return VersionInfo(name=self.pkg_name, version=version or self.pkg_version, url=self.url)
