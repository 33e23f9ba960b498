"""Shared fixtures: an in-memory package registry and a scratch project."""

import json
import os

import pytest

from constants import EndpointType
from registry import REPOSITORY_TYPES, archive
from registry.base import Repository
from versioning import semver_ops
from versioning.models import DownloadResult, VersionInfo


class FakeRepository(Repository):
    """Registry adapter serving packages from ``packages``.

    ``packages`` maps a name to ``{version: dependencies}``; every download is
    recorded in ``downloads`` as ``name@version``.
    """

    endpoint_type = EndpointType.NPM
    packages = {}
    downloads = []

    def fetch_available_version(self, version=None):
        fetch_version = version if version is not None else self.pkg_version
        versions = [
            VersionInfo(name=self.pkg_name, version=item)
            for item in (self.packages.get(self.pkg_name) or {})
        ]
        versions = semver_ops.sort_versions(versions, "version", descending=True)
        return self.get_fetch_version(fetch_version, versions, [])

    def fetch_version_metadata(self, info):
        return VersionInfo(
            name=self.pkg_name,
            version=info.version,
            url=f"https://fake/{self.pkg_name}-{info.version}.tgz",
        )

    def download(self, info):
        self.downloads.append(f"{info.name or self.pkg_name}@{info.version}")
        temp_dir = archive.make_temp_dir()
        package_dir = os.path.join(temp_dir, "package")
        os.makedirs(package_dir)
        name = info.name or self.pkg_name
        deps = (self.packages.get(name) or {}).get(info.version) or {}
        with open(os.path.join(package_dir, "package.json"), "w", encoding="utf-8") as fh:
            json.dump({"name": name, "version": info.version, "dependencies": deps}, fh)
        url = info.url or f"https://fake/{name}-{info.version}.tgz"
        self.resolved_url = url
        return DownloadResult(
            dir=package_dir,
            resolved_url=url,
            name=name,
            version=info.version,
            temp_dir=temp_dir,
        )


@pytest.fixture
def fake_registry(monkeypatch):
    FakeRepository.packages = {}
    FakeRepository.downloads = []
    monkeypatch.setitem(REPOSITORY_TYPES, EndpointType.NPM, FakeRepository)
    return FakeRepository


@pytest.fixture
def project_dir(tmp_path):
    with open(str(tmp_path / "package.json"), "w", encoding="utf-8") as fh:
        json.dump({"name": "app", "version": "0.1.0"}, fh)
    return tmp_path
