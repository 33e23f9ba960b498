"""``list`` command: show the installed tree and what is missing."""

import logging
from typing import Any, Dict, List, Optional

from common.errors import CompkgError
from project.node import PackageNode, find_by_name
from project.project import Project
from report import format_list
from versioning.models import UpdateData

logger = logging.getLogger(__name__)


def merge_manifest_info(project: Project, installed: List[PackageNode]) -> List[PackageNode]:
    """Flag installed nodes declared in the manifest; return declared ones not installed."""
    not_installed = []
    for node in project.dependencies:
        found = find_by_name(node.name, installed)
        if found is not None:
            found.is_dep = True
        else:
            node.installed = False
            not_installed.append(node)
    for node in project.dev_dependencies:
        found = find_by_name(node.name, installed)
        if found is not None:
            found.is_dev_dep = True
    return not_installed


def link_dependencies(project: Project, node: PackageNode, missing: List[PackageNode]) -> None:
    """Point each dependency of ``node`` at its installed package, collecting the missing ones."""
    for dep in node.get_dependencies():
        found = project.find_installed(dep.name)
        if found is not None:
            project.arena.set_mirror(dep, found)
        else:
            dep.installed = False
            missing.append(dep)


def collect_package(project: Project, name: str) -> Dict[str, Any]:
    """Closure of one installed package: installed dependencies and missing ones."""
    target = project.find_installed(name)
    if target is None:
        return {"installed": [], "missing_manifest": [], "missing_deps": [], "install_deps": []}

    missing: List[PackageNode] = []
    install_deps: List[PackageNode] = []
    visited = set()
    pending = [target]
    while pending:
        item = pending.pop(0)
        if item.name in visited:
            continue
        visited.add(item.name)
        found = project.find_installed(item.name)
        if found is None:
            missing.append(item)
            continue
        if found is not item:
            project.arena.set_mirror(item, found)
        if found is not target:
            install_deps.append(found)
        pending.extend(found.get_dependencies())

    merge_manifest_info(project, [target] + install_deps)
    return {
        "installed": [target],
        "missing_manifest": [],
        "missing_deps": missing,
        "install_deps": install_deps,
    }


def collect_all(project: Project) -> Dict[str, Any]:
    installed = project.installed
    missing_manifest = merge_manifest_info(project, installed)
    missing_deps: List[PackageNode] = []
    for node in installed:
        link_dependencies(project, node, missing_deps)
    return {
        "installed": installed,
        "missing_manifest": missing_manifest,
        "missing_deps": missing_deps,
    }


def fetch_available_update(nodes: List[PackageNode]) -> None:
    """Attach update data to each node; a failed lookup is recorded, not raised."""
    for node in nodes:
        try:
            node.update_data = node.repository.fetch_update_data(node.install_version)
        except CompkgError as exc:
            logger.debug("fetch update data of %s fail: %s", node.name, exc)
            node.update_data = UpdateData(error=str(exc))


def list_installed_components(
    root: Optional[str] = None,
    name: Optional[str] = None,
    available_update: bool = False,
    depth: int = 2,
    project: Optional[Project] = None,
) -> Dict[str, Any]:
    """Print the installed package tree.

    Args:
        root: Project root.
        name: Only show this installed package and its dependencies.
        available_update: Look up newer versions for the listed packages;
            with ``name`` all versions and tags of that package are shown too.
        depth: Tree depth to print below the project.
    """
    project = project or Project(root)
    info = collect_package(project, name) if name else collect_all(project)

    if available_update:
        fetch_nodes = info["installed"] + info.get("install_deps", [])
        single = info["installed"][0] if name and info["installed"] else None
        fetch_available_update([single] if single is not None else fetch_nodes)
        if single is not None:
            try:
                info["all_versions"] = single.repository.fetch_all_versions()
            except CompkgError as exc:
                logger.warning("fetch all versions of %s fail: %s", single.name, exc)

    logger.info("%s", format_list(project, info, depth))

    project_info = project.manifest.name or project.root
    for node in info["missing_manifest"]:
        logger.warning("missing: %s, required by %s", node.get_name_version_info(), project_info)
    return info
