"""The project being managed: its root, manifest and installed packages."""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from common.errors import CompkgError, ManifestWriteError
from common.fs_utils import copy_directory, is_empty_dir, remove_dir, to_posix
from constants import Constants, EndpointType
from versioning.models import InstallState

from .arena import NodeArena
from .manifest import ManifestData, PackageMeta, read_manifest_file, read_package_manifest
from .node import PackageNode, dedupe, find_by_name, remove_by_name, to_package_list

logger = logging.getLogger(__name__)


def find_project_root(start: Optional[str] = None) -> str:
    """Walk up from ``start`` to the nearest directory holding the manifest file.

    Falls back to ``start`` itself when no ancestor has one.
    """
    start = os.path.abspath(start or os.getcwd())
    current = start
    while True:
        if os.path.isfile(os.path.join(current, Constants.MANIFEST_FILE)):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return start
        current = parent


class Project:
    """A project directory with its manifest and ``dep`` install directory.

    Args:
        root: Explicit project root. When omitted the root is discovered by
            walking up from the working directory.

    Raises:
        CompkgError: If an explicit ``root`` does not exist.
    """

    def __init__(self, root: Optional[str] = None):
        if root is not None:
            root = os.path.abspath(os.path.expanduser(root))
            if not os.path.isdir(root):
                raise CompkgError(f"Project root {root} is not existed.")
        else:
            root = find_project_root()
        self.root = root
        self.manifest_file = os.path.join(root, Constants.MANIFEST_FILE)
        self.arena = NodeArena()
        self.manifest: ManifestData = read_manifest_file(self.manifest_file)
        self.dependencies: List[PackageNode] = dedupe(
            to_package_list(self.manifest.dependencies, self.manifest.lock)
        )
        self.dev_dependencies: List[PackageNode] = dedupe(
            to_package_list(self.manifest.dev_dependencies, self.manifest.lock)
        )
        self.installed: List[PackageNode] = []
        self._scan_installed(self.install_dir, self.installed)
        logger.debug(
            "project %s: %d deps, %d dev deps, %d installed",
            root, len(self.dependencies), len(self.dev_dependencies), len(self.installed),
        )

    @property
    def install_dir(self) -> str:
        return os.path.join(self.root, Constants.INSTALL_DIR)

    @property
    def lock(self) -> Dict[str, Any]:
        return self.manifest.lock

    def get_install_path(self, name: str) -> str:
        return os.path.join(self.install_dir, name)

    def read_package_manifest(
        self, pkg_dir: str, find_down: bool = False
    ) -> Optional[PackageMeta]:
        return read_package_manifest(pkg_dir, None, find_down)

    def _scan_installed(self, scan_dir: str, result: List[PackageNode]) -> None:
        try:
            entries = sorted(os.listdir(scan_dir))
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("read installed packages from %s fail: %s", scan_dir, exc)
            return

        for file_name in entries:
            full_path = os.path.join(scan_dir, file_name)
            if not os.path.isdir(full_path):
                continue
            if file_name.startswith("@"):
                self._scan_installed(full_path, result)
                continue
            result.append(self._load_installed(full_path))

    def _load_installed(self, pkg_dir: str) -> PackageNode:
        meta = read_package_manifest(pkg_dir, None, True)
        fallback_name = to_posix(os.path.relpath(pkg_dir, self.install_dir))
        name = meta.name or fallback_name
        lock_info = self.lock.get(name) if isinstance(self.lock.get(name), dict) else {}

        node = PackageNode(
            name=name,
            version=meta.version,
            install_version=meta.version,
            root=meta.root,
            main=meta.main,
            dep=meta.dep,
            meta_data=meta.meta_data,
            resolved_url=lock_info.get("resolved"),
        )
        node.set_install_state(InstallState.INSTALLED)

        defined = self.find_in_manifest(name)
        if defined is not None:
            node.alias_name = defined.alias_name
            node.version = defined.version
            node.init_repository(defined.endpoint, lock_info.get("resolved"))
        elif lock_info.get("endpoint"):
            endpoint_type = EndpointType.from_value(lock_info["endpoint"])
            if endpoint_type is not None:
                node.init_repository(node.endpoint.with_type(endpoint_type), lock_info.get("resolved"))

        node.set_dependencies(
            to_package_list(node.dep, self.lock, node.repository.get_dep_endpoint())
        )
        return node

    def find_installed(self, name: Optional[str]) -> Optional[PackageNode]:
        return find_by_name(name, self.installed)

    def find_dep_in_manifest(self, name: Optional[str]) -> Optional[PackageNode]:
        return find_by_name(name, self.dependencies)

    def find_dev_dep_in_manifest(self, name: Optional[str]) -> Optional[PackageNode]:
        return find_by_name(name, self.dev_dependencies)

    def find_in_manifest(self, name: Optional[str]) -> Optional[PackageNode]:
        return self.find_dep_in_manifest(name) or self.find_dev_dep_in_manifest(name)

    def is_ignored(self, name: Optional[str]) -> bool:
        return bool(name) and name in self.manifest.ignore_dependencies

    def add_installed(self, node: PackageNode, package_dir: str) -> None:
        """Copy a downloaded package into the install directory and track it."""
        target = self.get_install_path(node.name)
        logger.debug("copy %s to %s", package_dir, target)
        copy_directory(package_dir, target, override=True)
        node.root = target
        node.new_installed = True
        self.installed.append(node)

    def remove_installed(self, node: PackageNode) -> None:
        """Delete an installed package directory and stop tracking it.

        An ``@scope`` directory left empty (dotfiles aside) is removed too.
        The package stays tracked when the delete raises.
        """
        target = node.root or self.get_install_path(node.name)
        logger.debug("remove installed package %s: %s", node.name, target)
        remove_dir(target)
        remove_by_name(node.name, self.installed)

        parent = os.path.dirname(target)
        if (
            os.path.basename(parent).startswith("@")
            and is_empty_dir(parent, include=lambda entry: not entry.startswith("."))
        ):
            remove_dir(parent)

    def write_manifest(self, data: Dict[str, Any]) -> None:
        """Rewrite the whole manifest file with ``data``.

        Raises:
            ManifestWriteError: If the file cannot be written.
        """
        try:
            with open(self.manifest_file, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(data, indent=2, ensure_ascii=False))
                fh.write("\n")
        except OSError as exc:
            raise ManifestWriteError(f"write manifest {self.manifest_file} fail: {exc}") from exc
        self.manifest.raw_data = data
