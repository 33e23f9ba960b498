"""Package graph node and the list helpers that operate on nodes."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from common.errors import SpecifierError
from constants import Constants, EndpointType
from registry import create_repository
from versioning import semver_ops
from versioning.models import (
    CheckResult,
    Endpoint,
    InstallInfo,
    InstallPhase,
    InstallState,
    PackageDescriptor,
    UpdateData,
)
from versioning.parser import is_uri_scheme, parse

logger = logging.getLogger(__name__)


class PackageNode:
    """One occurrence of a dependency during a command run.

    A node starts from a parsed specifier, a manifest entry or an installed
    directory. The installer resolves it, records its install outcome and
    attaches its child nodes once its own install step is settled.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        version: Optional[str] = None,
        endpoint: Optional[Endpoint] = None,
        alias_name: Optional[str] = None,
        install_version: Optional[str] = None,
        root: Optional[str] = None,
        main: Optional[str] = None,
        dep: Optional[Dict[str, str]] = None,
        resolved_url: Optional[str] = None,
        meta_data: Optional[Dict[str, Any]] = None,
        explicit_endpoint: bool = False,
    ):
        self.name = name
        self.version = version
        self.alias_name = alias_name
        self.install_version = install_version
        self.root = root
        self.main = main
        self.dep = dep
        self.meta_data = meta_data or {}
        self.explicit_endpoint = explicit_endpoint

        self.dependencies: List["PackageNode"] = []
        self.referenced_by: Optional["PackageNode"] = None

        self.install_state = InstallState.PENDING
        self.phase = InstallPhase.QUEUED
        self.failure_reason: Optional[str] = None
        self.old_version: Optional[str] = None
        self.conflict = False
        self.degrade = False
        self.already_installed = False
        self.new_installed = False
        self.temp_dir: Optional[str] = None

        self.is_dep = False
        self.is_dev_dep = False
        self.update_data: Optional[UpdateData] = None

        # arena bookkeeping, see project.arena
        self.node_id: Optional[int] = None
        self.arena = None

        self.endpoint: Endpoint = None
        self.repository = None
        self.init_repository(endpoint, resolved_url)

    @classmethod
    def from_descriptor(cls, descriptor: PackageDescriptor) -> "PackageNode":
        return cls(
            name=descriptor.name,
            version=descriptor.version,
            endpoint=descriptor.endpoint,
            alias_name=descriptor.alias_name,
            explicit_endpoint=descriptor.explicit_endpoint,
        )

    def __str__(self) -> str:
        value = f"{self.endpoint.type.value}:" if self.endpoint else ""
        value += self.name or self.alias_name or (self.repository.pkg_name or "")
        if self.version:
            value += "@" + self.version
        return value

    def __repr__(self) -> str:
        return f"PackageNode({self})"

    def init_repository(self, endpoint: Optional[Endpoint], resolved_url: Optional[str] = None) -> None:
        """Bind the repository adapter for ``endpoint`` (the default endpoint when None)."""
        self.endpoint = endpoint or Endpoint.default()
        self.repository = create_repository(
            self.endpoint, name=self.name, version=self.version, resolved_url=resolved_url
        )

    @property
    def installed(self) -> bool:
        return self.install_state is InstallState.INSTALLED

    @installed.setter
    def installed(self, value: bool) -> None:
        self.install_state = InstallState.INSTALLED if value else InstallState.PENDING

    def set_install_state(self, state: InstallState, reason: Optional[str] = None) -> None:
        self.install_state = state
        self.failure_reason = (
            reason if state in (InstallState.FAILED, InstallState.SKIPPED) else None
        )

    def set_dependencies(self, dependencies: Iterable["PackageNode"]) -> None:
        self.dependencies = list(dependencies)
        for item in self.dependencies:
            item.referenced_by = self

    def get_dependencies(self) -> List["PackageNode"]:
        return self.dependencies

    def get_real_node(self) -> "PackageNode":
        """Follow mirror links to the node that owns the install."""
        if self.arena is None:
            return self
        return self.arena.resolve(self)

    def is_mirror(self) -> bool:
        return self.arena is not None and self.arena.is_mirror(self)

    def get_resolved_url(self) -> Optional[str]:
        return self.repository.get_resolved_url()

    def is_resolved(self) -> bool:
        return bool(self.get_resolved_url())

    def get_name_version_info(self) -> str:
        info = self.name or ""
        if self.version:
            info += "@" + self.version
        return info

    def init_install_info(self, info: CheckResult) -> None:
        """Copy the outcome of an install step onto this node."""
        self.install_version = info.version
        self.name = info.name
        self.main = info.main
        if info.endpoint:
            self.init_repository(info.endpoint, info.resolved_url)
        elif info.resolved_url:
            self.repository.resolved_url = info.resolved_url
        self.dep = info.dep
        self.already_installed = info.installed
        self.new_installed = info.new_installed
        self.temp_dir = info.temp_dir
        self.root = info.root
        self.conflict = self.conflict or info.conflict
        if info.meta_data:
            self.meta_data = info.meta_data

    def get_install_info(self) -> InstallInfo:
        """Manifest and lock view of the real node behind this one."""
        real = self.get_real_node()
        allow_version = real.version or ""
        install_version = real.install_version
        version_range = None
        if allow_version and allow_version not in Constants.LATEST_VERSION_TAGS:
            version_range = "^" + allow_version if semver_ops.valid(allow_version) else allow_version
        elif install_version:
            version_range = "^" + install_version

        source = real.repository.get_install_source()
        expect_version = version_range or ""
        return InstallInfo(
            endpoint=source.type.value,
            name=real.name,
            path=source.path or expect_version,
            version=install_version,
            expect_version=expect_version,
            resolved=real.repository.get_resolved_url(),
        )


def dedup_key(node: PackageNode, support_alias: bool = False) -> str:
    """Key identifying requests for the same install: name, alias, version, endpoint."""
    key = node.name or ""
    if support_alias:
        key += node.alias_name or ""
    key += node.version or ""
    endpoint = node.endpoint
    if endpoint is not None:
        key += endpoint.type.value
        key += endpoint.value or ""
    return key


def find_index_by_name(name: Optional[str], nodes: List[PackageNode]) -> int:
    """Index of the first node whose real node is named ``name``, or -1.

    Falls back to a case-insensitive match, with a warning, for installs made
    on case-insensitive filesystems.
    """
    if not name:
        return -1
    for index, node in enumerate(nodes):
        if node.get_real_node().name == name:
            return index

    lower_name = name.lower()
    for index, node in enumerate(nodes):
        real = node.get_real_node()
        if real.name and real.name.lower() == lower_name:
            logger.warning(
                "exist different case installed package name with %s: %s",
                name, real.root or real.name,
            )
            return index
    return -1


def find_by_name(name: Optional[str], nodes: List[PackageNode]) -> Optional[PackageNode]:
    index = find_index_by_name(name, nodes)
    return nodes[index].get_real_node() if index != -1 else None


def remove_by_name(name: str, nodes: List[PackageNode]) -> List[PackageNode]:
    """Remove every node whose real node is named ``name``; return the removed real nodes."""
    removed = []
    for index in range(len(nodes) - 1, -1, -1):
        real = nodes[index].get_real_node()
        if real.name == name:
            removed.append(real)
            del nodes[index]
    return removed


def dedupe(nodes: Iterable[PackageNode]) -> List[PackageNode]:
    """Drop nodes sharing a dedup key (alias included), keeping the first."""
    seen = set()
    result = []
    for node in nodes:
        key = dedup_key(node, support_alias=True)
        if key not in seen:
            seen.add(key)
            result.append(node)
    return result


def flatten(nodes: Iterable[PackageNode], ignore_alias: bool = False) -> List[PackageNode]:
    """Flatten a dependency tree in pre-order, one entry per name (or alias)."""
    result = []
    added = set()
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        key = node.name if ignore_alias else (node.alias_name or node.name)
        if key in added:
            continue
        added.add(key)
        result.append(node)
        stack.extend(reversed(node.get_real_node().get_dependencies()))
    return result


def failed_package(
    name: Optional[str],
    version: Optional[str],
    reason: str,
    endpoint: Optional[Endpoint] = None,
) -> PackageNode:
    """A node that failed before resolution, e.g. on an unparsable specifier."""
    node = PackageNode(name=name, version=version, endpoint=endpoint)
    node.set_install_state(InstallState.FAILED, reason)
    node.phase = InstallPhase.FAILED
    return node


def to_package(specifier: str) -> PackageNode:
    """Build a node from a command line specifier (alias syntax allowed)."""
    return PackageNode.from_descriptor(parse(specifier, support_alias=True))


def _lock_entry(name: str, lock: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    entry = lock.get(name)
    if entry is not None:
        return entry
    for item in lock.values():
        if isinstance(item, dict) and item.get("aliasName") == name:
            return item
    return None


def to_package_list(
    dep_map: Optional[Mapping[str, Any]],
    lock: Optional[Mapping[str, Any]] = None,
    dep_endpoint: Optional[Endpoint] = None,
) -> List[PackageNode]:
    """Turn a ``name -> version spec`` map into nodes.

    Lock entries pin the endpoint type, exact version, resolved URL and the
    dependency map. Without a lock entry, names without an explicit endpoint
    take ``dep_endpoint`` (the parent repository's endpoint for its deps).
    An entry whose value cannot be parsed becomes a failed node.
    """
    lock = lock or {}
    nodes = []
    for key, raw_value in (dep_map or {}).items():
        value = "" if raw_value is None else str(raw_value)
        lock_info = _lock_entry(key, lock)
        if not is_uri_scheme(value):
            value = f"{key}@{value}"

        try:
            descriptor = parse(value, support_alias=False)
        except SpecifierError as exc:
            logger.warning("parse dependence %s fail: %s", key, exc)
            version = str(raw_value) if raw_value else None
            nodes.append(failed_package(key, version, str(exc), dep_endpoint))
            continue
        name = (lock_info or {}).get("name") or descriptor.name or key
        alias_name = key if key != name else None
        endpoint = descriptor.endpoint
        install_version = resolved_url = dep = None

        if lock_info:
            alias_name = lock_info.get("aliasName") or alias_name
            if lock_info.get("endpoint"):
                endpoint_type = EndpointType.from_value(lock_info["endpoint"])
                if endpoint_type is not None:
                    endpoint = endpoint.with_type(endpoint_type)
            install_version = lock_info.get("version")
            resolved_url = lock_info.get("resolved")
            if lock_info.get("dependencies"):
                dep = to_dep_map(lock_info["dependencies"])
        elif dep_endpoint is not None and not descriptor.explicit_endpoint:
            endpoint = dep_endpoint

        nodes.append(PackageNode(
            name=name,
            version=descriptor.version,
            endpoint=endpoint,
            alias_name=alias_name,
            install_version=install_version,
            resolved_url=resolved_url,
            dep=dep,
            explicit_endpoint=descriptor.explicit_endpoint,
        ))
    return nodes


def to_dep_map(deps: Iterable[Mapping[str, str]]) -> Dict[str, str]:
    return {item["name"]: item.get("from") for item in deps if item.get("name")}


def to_dep_list(
    dep_map: Mapping[str, str], update_nodes: Optional[List[PackageNode]] = None
) -> List[Dict[str, str]]:
    """``[{name, from}]`` entries for a dependency map, preferring updated nodes' sources."""
    update_nodes = update_nodes or []
    result = []
    for name, spec in dep_map.items():
        existed = find_by_name(name, update_nodes)
        if existed is not None:
            result.append({"name": name, "from": existed.get_install_info().path})
        else:
            result.append({"name": name, "from": spec})
    return result
