"""Removal of installed packages with reference safety checks."""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

from common.prompt import Confirm, ask_yes_no
from project.node import PackageNode
from project.project import Project
from versioning.models import UninstallOutcome, UninstallStatus

logger = logging.getLogger(__name__)

CanUninstall = Callable[[PackageNode], bool]


def _outcome(
    node: PackageNode,
    status: UninstallStatus,
    reason: Optional[str] = None,
    blocked_by: Optional[str] = None,
    referenced_by: Optional[str] = None,
) -> UninstallOutcome:
    return UninstallOutcome(
        name=node.name,
        status=status,
        version=node.version,
        install_version=node.install_version,
        reason=reason,
        blocked_by=blocked_by,
        referenced_by=referenced_by,
    )


class Uninstaller:
    """Removes packages from a project's install directory.

    A requested package is kept while another installed package still
    depends on it. Packages pulled in by the cascade over dependencies are
    additionally kept when the project manifest declares them.
    """

    def __init__(self, project: Project, prompt: Confirm = ask_yes_no):
        self.project = project
        self.prompt = prompt

    def _installed_by_name(self) -> Dict[str, PackageNode]:
        return {node.name: node for node in self.project.installed if node.name}

    def find_referrer(self, name: str) -> Optional[PackageNode]:
        """First other installed package reaching ``name`` through its dependencies."""
        by_name = self._installed_by_name()
        for installed in self.project.installed:
            if installed.name == name:
                continue
            visited = {installed.name}
            pending = list(installed.get_dependencies())
            while pending:
                dep = pending.pop(0)
                if dep.name == name:
                    return installed
                if dep.name in visited:
                    continue
                visited.add(dep.name)
                dep_installed = by_name.get(dep.name)
                if dep_installed is not None:
                    pending.extend(dep_installed.get_dependencies())
        return None

    def _closure(self, target: PackageNode) -> List[PackageNode]:
        """Target followed by its transitive dependencies, parents first."""
        by_name = self._installed_by_name()
        result = [target]
        seen = {target.name}
        index = 0
        while index < len(result):
            current = by_name.get(result[index].name, result[index])
            index += 1
            for dep in current.get_dependencies():
                if dep.name in seen:
                    continue
                seen.add(dep.name)
                result.append(dep)
        return result

    def _blocked_by_reference(
        self, node: PackageNode, referenced_by: Optional[str] = None
    ) -> Optional[UninstallOutcome]:
        referrer = self.find_referrer(node.name)
        if referrer is None:
            return None
        logger.warning(
            "exist reference to package %s from %s, cancel uninstall", node.name, referrer.name
        )
        return _outcome(
            node,
            UninstallStatus.BLOCKED,
            reason=f"referenced by {referrer.name}",
            blocked_by=referrer.name,
            referenced_by=referenced_by,
        )

    def _remove(self, node: PackageNode, referenced_by: Optional[str] = None) -> UninstallOutcome:
        try:
            self.project.remove_installed(node)
        except OSError as exc:
            logger.warning("uninstall %s fail: %s", node.name, exc)
            return _outcome(node, UninstallStatus.FAILED, reason=str(exc), referenced_by=referenced_by)
        logger.info("uninstall %s done", node.get_name_version_info())
        return _outcome(node, UninstallStatus.REMOVED, referenced_by=referenced_by)

    def uninstall(
        self,
        target: Union[str, PackageNode],
        remove_dep: bool = True,
        confirm: bool = True,
        can_uninstall: Optional[CanUninstall] = None,
        force_target: bool = False,
    ) -> List[UninstallOutcome]:
        """Uninstall ``target`` and, with ``remove_dep``, its unused dependencies.

        The target goes first; the cascade stops when it cannot be removed.
        Dependencies are then checked parents first, and those still
        referenced are checked again after each round that removed
        something, so a package only kept alive by other cascaded packages
        goes with them.

        Args:
            target: Package name or installed node.
            remove_dep: Cascade over the target's dependencies.
            confirm: Ask before removing anything.
            can_uninstall: Extra veto applied to every node.
            force_target: Skip the reference check for the target itself.

        Returns:
            One outcome per processed package, target first.
        """
        if isinstance(target, str):
            installed = self.project.find_installed(target)
            if installed is None:
                logger.info("package %s is not installed", target)
                return [UninstallOutcome(name=target, status=UninstallStatus.NOT_INSTALLED)]
            target = installed

        if not force_target:
            blocked = self._blocked_by_reference(target)
            if blocked is not None:
                return [blocked]

        cascade = self._closure(target)[1:] if remove_dep else []

        if confirm:
            question = f"Confirm uninstall package {target.name}"
            if target.install_version:
                question += f"@{target.install_version}"
            if not self.prompt(question + " [y/n]"):
                logger.info("cancel uninstall %s", target.name)
                return [_outcome(target, UninstallStatus.CANCELLED)]

        if can_uninstall is not None and not can_uninstall(target):
            return [_outcome(target, UninstallStatus.BLOCKED, reason="vetoed by caller")]

        removed = self._remove(target)
        if not removed.uninstalled:
            return [removed]

        outcomes: Dict[str, UninstallOutcome] = {target.name: removed}
        order = [target.name]
        pending: List[Tuple[PackageNode, str]] = []
        installed = self._installed_by_name()
        for dep in cascade:
            order.append(dep.name)
            parent = dep.referenced_by or target
            parent_info = parent.get_name_version_info()
            existing = installed.get(dep.name)
            if existing is None:
                outcomes[dep.name] = _outcome(
                    dep, UninstallStatus.NOT_INSTALLED, referenced_by=parent_info
                )
            elif self.project.find_in_manifest(existing.name) is not None:
                logger.info("package %s is declared in manifest, keep it", existing.name)
                outcomes[dep.name] = _outcome(
                    existing, UninstallStatus.BLOCKED,
                    reason="declared in manifest", referenced_by=parent_info,
                )
            elif can_uninstall is not None and not can_uninstall(existing):
                outcomes[dep.name] = _outcome(
                    existing, UninstallStatus.BLOCKED,
                    reason="vetoed by caller", referenced_by=parent_info,
                )
            else:
                pending.append((existing, parent_info))

        progress = True
        while pending and progress:
            progress = False
            remaining = []
            for existing, parent_info in pending:
                if self.find_referrer(existing.name) is not None:
                    remaining.append((existing, parent_info))
                    continue
                outcomes[existing.name] = self._remove(existing, parent_info)
                progress = True
            pending = remaining

        for existing, parent_info in pending:
            outcomes[existing.name] = self._blocked_by_reference(existing, parent_info)
        return [outcomes[name] for name in order]

    def uninstall_names(
        self, names: List[str], remove_dep: bool = True, confirm: bool = True
    ) -> List[UninstallOutcome]:
        results = []
        for name in names:
            results.extend(self.uninstall(name, remove_dep=remove_dep, confirm=confirm))
        return results
