"""Local filesystem adapter: a package directory or archive on disk."""

import logging
import os
from typing import Optional

from common.errors import DownloadFailure
from common.fs_utils import copy_directory, remove_dir
from constants import EndpointType
from versioning.models import DownloadResult, Endpoint, InstallSource, VersionInfo
from . import archive
from .base import Repository

logger = logging.getLogger(__name__)


class LocalRepository(Repository):
    endpoint_type = EndpointType.LOCAL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.file_path = self.source
        if self.file_path and not self.pkg_name:
            self.pkg_name = os.path.basename(self.file_path.rstrip("/\\"))

    def prefix(self) -> str:
        # file:../a/b.zip er@2.1.0
        return f"{self.endpoint_type.value}:{self.file_path} "

    def need_resolve(self) -> bool:
        return False

    def get_dep_endpoint(self) -> Optional[Endpoint]:
        return None

    def get_install_source(self) -> InstallSource:
        return InstallSource(type=self.endpoint_type, path=f"{self.endpoint_type.value}:{self.file_path}")

    def get_resolved_url(self) -> Optional[str]:
        return self.file_path

    def fetch_available_version(self, version: Optional[str] = None) -> VersionInfo:
        return VersionInfo(name=self.pkg_name, version=version or self.pkg_version)

    def download(self, info: VersionInfo) -> DownloadResult:
        file_path = self.file_path
        if not file_path:
            raise DownloadFailure("unknown file path")
        if not os.path.exists(file_path):
            raise DownloadFailure(f"local package {file_path} does not exist")

        logger.debug("begin load package from local: %s...", file_path)
        temp_dir = archive.make_temp_dir()
        package_dir = os.path.join(temp_dir, "package")
        try:
            if os.path.isdir(file_path):
                copy_directory(file_path, package_dir)
            else:
                archive.extract(file_path, package_dir)
        except BaseException:
            remove_dir(temp_dir)
            raise
        return DownloadResult(
            dir=package_dir,
            resolved_url=file_path,
            name=info.name,
            version=info.version,
            temp_dir=temp_dir,
        )
