"""Write install and uninstall outcomes back into the project manifest."""

import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from common.fs_utils import to_posix
from constants import Constants
from project.node import (
    PackageNode,
    find_by_name,
    find_index_by_name,
    flatten,
    remove_by_name,
    to_dep_list,
)
from project.project import Project
from versioning.models import SaveInfo, UninstallOutcome

from .session import InstallSession

logger = logging.getLogger(__name__)

_SRC_PREFIX_RE = re.compile(r"^(\./)?src/")
_MAIN_TRIM_RE = re.compile(r"(^\./|\.js$)")


def find_available_name(dep_map: Dict[str, Any], name: str) -> str:
    """``name`` suffixed with the smallest counter not yet used in ``dep_map``."""
    counter = 1
    while f"{name}{counter}" in dep_map:
        counter += 1
    return f"{name}{counter}"


def get_removed_names(
    raw_dep_map: Optional[Dict[str, Any]],
    raw_dev_dep_map: Optional[Dict[str, Any]],
    dep_map: Optional[Dict[str, Any]],
    dev_dep_map: Optional[Dict[str, Any]],
) -> List[str]:
    removed = []
    for raw, current in ((raw_dep_map, dep_map), (raw_dev_dep_map, dev_dep_map)):
        if raw and current is not None:
            removed.extend(name for name in raw if name not in current)
    return removed


class ManifestSynchronizer:
    """Keeps the manifest's dependency maps, module config and lock in step
    with what the engine installed or removed."""

    def __init__(self, project: Project, session: Optional[InstallSession] = None):
        self.project = project
        self.session = session or InstallSession()

    def to_dep_map(self, nodes: List[PackageNode]) -> Tuple[Dict[str, str], List[Tuple[str, PackageNode]]]:
        """Dependency map for ``nodes`` plus the key used for each node.

        A name seen twice is stored under ``name1``, ``name2``... and the node
        takes that key as its alias.
        """
        dep_map: Dict[str, str] = {}
        keyed = []
        for node in nodes:
            info = node.get_install_info()
            key = info.name
            if key in dep_map:
                new_key = find_available_name(dep_map, key)
                logger.warning("exist the same package name %s, rename it to %s", key, new_key)
                key = new_key
                node.get_real_node().alias_name = key
            dep_map[key] = info.path
            keyed.append((key, node))
        return dep_map, keyed

    def update_specified(
        self,
        nodes: List[PackageNode],
        replace_nodes: List[PackageNode],
        ignore_new_add: bool = False,
    ) -> None:
        """Put installed ``replace_nodes`` in place of same-named entries of ``nodes``."""
        to_add = []
        for item in replace_nodes:
            item = item.get_real_node()
            if not item.installed:
                continue
            index = find_index_by_name(item.name, nodes)
            if index == -1:
                if not ignore_new_add:
                    to_add.append(item)
            elif nodes[index] is not item:
                if not item.alias_name:
                    item.alias_name = nodes[index].alias_name
                nodes[index] = item
        nodes.extend(to_add)

    def update_infos(self, current: List[PackageNode], updates: List[PackageNode]) -> None:
        """Refresh ``current`` with newly installed nodes and add missing installed ones."""
        to_add = []
        for node in updates:
            real = node.get_real_node()
            if not real.installed:
                continue
            found = False
            for index, item in enumerate(current):
                if item.name != real.name:
                    continue
                found = True
                if item is real:
                    continue
                if (
                    not real.already_installed
                    and real.new_installed
                    and not self.session.get_expected_version(real.name)
                ):
                    current[index] = real
            if not found:
                installed = self.project.find_installed(real.name)
                if installed is not None and find_by_name(installed.name, to_add) is None:
                    to_add.append(installed)
        current.extend(to_add)

    def save_install_info(self, installed: List[PackageNode], save_info: SaveInfo) -> None:
        """Record installed root nodes in the manifest per ``save_info``."""
        if not (save_info.save_to_dep or save_info.save_to_dev_dep) or not installed:
            return

        deps = list(self.project.dependencies)
        dev_deps = list(self.project.dev_dependencies)

        if save_info.save_to_dep:
            self.update_specified(deps, installed, save_info.is_update)
            self.update_infos(deps, flatten(deps))
        if save_info.save_to_dev_dep:
            self.update_specified(dev_deps, installed, save_info.is_update)
            self.update_infos(dev_deps, flatten(dev_deps))

        self.save_manifest_info(
            deps if save_info.save_to_dep else None,
            dev_deps if save_info.save_to_dev_dep else None,
        )

    def save_uninstall_info(self, processed: List[UninstallOutcome], save_info: SaveInfo) -> None:
        """Drop removed top-level packages from the manifest lists."""
        if not (save_info.save_to_dep or save_info.save_to_dev_dep):
            return

        deps = flatten(self.project.dependencies)
        dev_deps = flatten(self.project.dev_dependencies)
        changed = False
        for outcome in processed:
            if outcome.referenced_by is not None:
                continue
            if not (outcome.uninstalled or outcome.not_existed):
                continue
            if save_info.save_to_dep and remove_by_name(outcome.name, deps):
                changed = True
            if save_info.save_to_dev_dep and remove_by_name(outcome.name, dev_deps):
                changed = True

        if changed:
            self.save_manifest_info(deps, dev_deps)

    def find_module_config(
        self, packages: List[Dict[str, Any]], name: str, base_path: Optional[str] = None
    ) -> int:
        """Index of the module loader entry for ``name``, searching from the end."""
        for index in range(len(packages) - 1, -1, -1):
            item = packages[index]
            if not isinstance(item, dict):
                continue
            if base_path is None:
                if item.get("name") == name:
                    return index
                continue
            location = item.get("location")
            if not location or re.match(r"^[a-z]+:", location, re.IGNORECASE):
                continue
            full_location = os.path.normpath(os.path.join(base_path, location))
            parts = to_posix(os.path.relpath(full_location, self.project.root)).split("/")
            name_parts = name.split("/")
            if parts[0] == Constants.INSTALL_DIR and parts[1:1 + len(name_parts)] == name_parts:
                return index
        return -1

    def update_module_packages(
        self,
        packages: List[Dict[str, Any]],
        nodes: List[PackageNode],
        removed: List[str],
        updated: List[PackageNode],
        base_path: str,
    ) -> List[Dict[str, Any]]:
        for name in removed:
            index = self.find_module_config(packages, name, base_path)
            if index != -1:
                del packages[index]

        for node in nodes:
            installed = self.project.find_installed(node.get_real_node().name)
            if installed is None:
                continue
            conf_name = node.alias_name or installed.name
            existed = self.find_module_config(packages, conf_name)
            if existed != -1 and find_by_name(installed.name, updated) is None:
                continue

            location = to_posix(os.path.relpath(installed.root, base_path))
            main = installed.main
            src_dir = os.path.join(installed.root, "src")
            if os.path.isdir(src_dir) and (
                not main
                or _SRC_PREFIX_RE.match(main)
                or not os.path.exists(os.path.join(installed.root, main))
            ):
                location += "/src"
                if main:
                    main = _SRC_PREFIX_RE.sub("", main)
            if main:
                main = _MAIN_TRIM_RE.sub("", main)

            conf = {"name": conf_name, "location": location}
            if main:
                conf["main"] = main
            if existed == -1:
                packages.append(conf)
            else:
                # values already in the manifest win
                merged = dict(conf)
                merged.update(packages[existed])
                packages[existed] = merged
        return packages

    def _init_lock_entry(
        self, key: str, node: PackageNode, lock: Dict[str, Any], updated: List[PackageNode]
    ) -> None:
        real = node.get_real_node()
        info = real.get_install_info()
        entry: Dict[str, Any] = {}
        alias_name = node.alias_name or real.alias_name
        if alias_name and alias_name != real.name:
            entry["aliasName"] = alias_name
        if key != real.name:
            entry["name"] = real.name
        entry["endpoint"] = info.endpoint
        entry["version"] = info.version
        entry["from"] = info.path
        entry["resolved"] = info.resolved
        if not info.resolved:
            logger.warning("missing installed package %s resolved info", real.get_name_version_info())

        dependencies = real.get_dependencies()
        if dependencies:
            entry["dependencies"] = [
                {"name": dep.get_real_node().name, "from": dep.get_install_info().path}
                for dep in dependencies
            ]
        elif real.dep:
            entry["dependencies"] = to_dep_list(real.dep, updated)
        lock[key] = entry

    def save_manifest_info(
        self,
        deps: Optional[List[PackageNode]],
        dev_deps: Optional[List[PackageNode]],
    ) -> None:
        """Rewrite the manifest's dependency maps, module config and lock.

        None leaves the corresponding map untouched.

        Raises:
            ManifestWriteError: If the manifest cannot be written.
        """
        data = self.project.manifest.raw_data
        info = data
        save_key = self.project.manifest.save_key
        if save_key:
            if not isinstance(data.get(save_key), dict):
                data[save_key] = {}
            info = data[save_key]

        raw_dep_map = info.get("dependencies")
        raw_dev_dep_map = info.get("devDependencies")
        keyed: List[Tuple[str, PackageNode]] = []
        dep_map = dev_dep_map = None
        if deps is not None:
            dep_map, dep_keys = self.to_dep_map(deps)
            info["dependencies"] = dep_map
            keyed.extend(dep_keys)
        if dev_deps is not None:
            dev_dep_map, dev_keys = self.to_dep_map(dev_deps)
            info["devDependencies"] = dev_dep_map
            keyed.extend(dev_keys)

        removed = get_removed_names(raw_dep_map, raw_dev_dep_map, dep_map, dev_dep_map)
        updated = list(deps or []) + list(dev_deps or [])

        if deps is not None:
            module_key = Constants.MODULE_CONFIG_KEY
            module_conf = info.get(module_key)
            if not isinstance(module_conf, dict):
                module_conf = {}
            info[module_key] = module_conf
            base_url = module_conf.get("baseUrl")
            if not base_url:
                base_url = module_conf["baseUrl"] = Constants.DEFAULT_MODULE_BASE_URL
            module_conf["packages"] = self.update_module_packages(
                list(module_conf.get("packages") or []),
                deps,
                removed,
                updated,
                os.path.join(self.project.root, base_url),
            )

        lock = info.get(Constants.LOCK_CONFIG_KEY)
        if not isinstance(lock, dict):
            lock = {}
        for name in removed:
            lock.pop(name, None)
        for key, node in keyed:
            self._init_lock_entry(key, node, lock, updated)
        info[Constants.LOCK_CONFIG_KEY] = lock

        self.project.write_manifest(data)
        self.project.manifest.lock = lock
        if deps is not None:
            self.project.dependencies = deps
            self.project.manifest.dependencies = dep_map
        if dev_deps is not None:
            self.project.dev_dependencies = dev_deps
            self.project.manifest.dev_dependencies = dev_dep_map
