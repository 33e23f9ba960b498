"""Plain-text summaries printed after install, update, uninstall, list and search."""

import logging
from typing import Any, Dict, List, Optional

from project.node import PackageNode
from project.project import Project
from versioning import semver_ops
from versioning.models import UninstallOutcome, UninstallStatus

logger = logging.getLogger(__name__)

_IGNORED_EXPECT_VERSIONS = ("*", "latest")


def _flatten_real(nodes: List[PackageNode]) -> List[PackageNode]:
    """Real nodes of the trees under ``nodes``, breadth first, one per name."""
    result = []
    added = set()
    pending = list(nodes)
    while pending:
        node = pending.pop(0).get_real_node()
        if node.name in added:
            continue
        added.add(node.name)
        result.append(node)
        pending.extend(node.get_dependencies())
    return result


def _tree_prefix(depth: int, indent: int, parents: List[bool]) -> str:
    prefix = ""
    for index in range(depth):
        prefix += " " * indent if parents[index] else "│" + " " * (indent - 1)
    return prefix


def _title(project: Project, expected: PackageNode, node: PackageNode) -> str:
    title = f"{node.endpoint.type.value}:{node.name}"
    installed = project.find_installed(node.name)
    version = installed.install_version if installed is not None else None
    if not node.installed and node.old_version:
        version = node.old_version
    if version:
        title += "@" + version

    expect = expected.version
    if expect and expect not in _IGNORED_EXPECT_VERSIONS and expect != version:
        if not semver_ops.satisfies(version, expect):
            title += f" expect {expect}"
    return title


def _install_line(project: Project, raw: PackageNode, is_update: bool) -> str:
    node = raw.get_real_node()
    line = _title(project, raw, node)
    if node.installed:
        if node.already_installed and not node.new_installed:
            line += " update none" if is_update else " installed"
        if node.old_version:
            line += f" replace {node.old_version}"
        elif is_update and node.new_installed:
            line += " new"
    else:
        if is_update:
            operation = "degrade" if node.degrade else "update"
            if node.install_version:
                line += f" {operation} {node.install_version} fail"
            else:
                line += f" {operation} fail"
        else:
            line += " install fail"
        if node.failure_reason:
            line += f": {node.failure_reason}"
    return line


def _list_line(project: Project, raw: PackageNode, depth: int, root_info: Optional[str]) -> str:
    node = raw.get_real_node()
    if not depth:
        line = node.get_name_version_info()
        if root_info:
            line += " " + root_info
        return line

    line = "" if node.installed else "UNMET DEPENDENCY "
    line += _title(project, raw, node)
    if node.installed:
        if depth == 1:
            if node.is_dev_dep and not node.is_dep:
                line += " devDependencies"
            elif not node.is_dep and not node.is_dev_dep:
                line += " extraneous"
        update_data = node.update_data
        if update_data is not None:
            if update_data.error:
                line += " fetch update info fail"
            else:
                parts = []
                if update_data.compat_version:
                    parts.append(f"compatible: {update_data.compat_version}")
                if update_data.latest_version:
                    parts.append(f"latest: {update_data.latest_version}")
                if parts:
                    line += " " + ", ".join(parts)
    return line


def _render_tree(
    project: Project,
    raw: PackageNode,
    lines: List[str],
    depth: int = 0,
    is_last: bool = True,
    parents: Optional[List[bool]] = None,
    max_depth: int = 0,
    listing: bool = False,
    is_update: bool = False,
    root_info: Optional[str] = None,
    indent: int = 4,
    total_indent: int = 2,
) -> None:
    parents = parents or []
    line = _tree_prefix(depth, indent, parents) + ("└── " if is_last else "├── ")
    if listing:
        line += _list_line(project, raw, depth, root_info)
    else:
        line += _install_line(project, raw, is_update)
    lines.append(" " * total_indent + line)

    if depth <= max_depth:
        # a mirror shares the children of its real node
        children = raw.get_real_node().get_dependencies()
        for index, child in enumerate(children):
            _render_tree(
                project, child, lines,
                depth=depth + 1,
                is_last=index == len(children) - 1,
                parents=parents + [is_last],
                max_depth=max_depth,
                listing=listing,
                is_update=is_update,
                indent=indent,
                total_indent=total_indent,
            )


def format_install_report(
    project: Project, nodes: List[PackageNode], is_update: bool = False
) -> str:
    flat = _flatten_real(nodes)
    lines: List[str] = []
    for index, node in enumerate(flat):
        _render_tree(project, node, lines, is_last=index == len(flat) - 1, is_update=is_update)
    prefix = "Update" if is_update else "Install"
    if not lines:
        return f"{prefix} nothing"
    return f"{prefix} done\n" + "\n".join(lines)


def format_update_fail(project: Project, names: List[str], save_to_dep: bool) -> str:
    key = "dependencies" if save_to_dep else "devDependencies"
    return "\n".join(
        f"Update {name} fail: {name} is not defined in the key `{key}` of {project.manifest_file}"
        for name in names
    )


def format_uninstall_report(project: Project, outcomes: List[UninstallOutcome]) -> str:
    lines = []
    for outcome in outcomes:
        refer = outcome.referenced_by
        if outcome.not_existed:
            if refer is None:
                lines.append(
                    f"uninstall {outcome.name} fail: it is not installed in {project.install_dir}"
                )
            continue
        line = f"uninstall {outcome.get_name_version_info()}"
        if refer is not None:
            line += f"(referred by {refer})"
        if outcome.status is UninstallStatus.REMOVED:
            line += " done"
        elif outcome.status is UninstallStatus.BLOCKED:
            line += f" blocked: {outcome.reason}"
        elif outcome.status is UninstallStatus.CANCELLED:
            line += " cancelled"
        else:
            line += " fail"
            if outcome.reason:
                line += f": {outcome.reason}"
        lines.append(line)
    lines.append("uninstall done")
    return "\n".join(lines)


def format_list(project: Project, list_info: Dict[str, Any], depth: int = 2) -> str:
    """Tree of installed packages followed by the missing dependencies."""
    project_node = PackageNode(
        name=project.manifest.name, version=project.manifest.version, root=project.root
    )
    project_node.set_dependencies(
        list_info["installed"] + list_info.get("missing_manifest", [])
    )
    lines: List[str] = []
    _render_tree(
        project, project_node, lines,
        max_depth=depth, listing=True, root_info=project.root,
    )
    output = ["Install info:"] + lines

    project_info = project_node.get_name_version_info() or project.root
    for node in list_info.get("missing_manifest", []):
        output.append(f"missing: {node.get_name_version_info()}, required by {project_info}")
    for node in list_info.get("missing_deps", []):
        refer = node.referenced_by
        required_by = refer.get_name_version_info() if refer is not None else project_info
        output.append(f"missing: {node.get_name_version_info()}, required by {required_by}")

    all_versions = list_info.get("all_versions")
    if all_versions:
        for kind, items in all_versions.items():
            labels = [item.tag or item.version for item in items if item.tag or item.version]
            if labels:
                output.append(f"{kind}: {', '.join(labels)}")
    return "\n".join(output)


def format_search(result: Dict[str, Any], key: str) -> str:
    items = result.get("list") or []
    count = result.get("count", len(items))
    summary = f"Found {count} results"
    if len(items) != count:
        summary += f", show top {len(items)}"
    lines = [summary + ":"]
    for item in items:
        lines.append(f"{item.get('name')}: {item.get('time') or ''}")
        if result.get("github"):
            lines.append(f"  stars: {item.get('stars')}  forks: {item.get('forks')}")
        if item.get("description"):
            lines.append(f"  {item['description']}")
        if item.get("version"):
            lines.append(f"  version: {item['version']}")
        if item.get("url"):
            lines.append(f"  repository: {item['url']}")
    return "\n".join(lines)
