"""Sequential install engine: resolve, fetch, arbitrate and place packages."""

import logging
from collections import deque
from typing import Iterable, List, Optional

from common.errors import CompkgError, UninstallFailure, UserCancelled
from common.fs_utils import remove_dir
from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.prompt import Confirm, ask_yes_no
from project.node import PackageNode, dedup_key, to_package_list
from project.project import Project
from versioning.arbiter import VersionArbiter
from versioning.models import (
    CheckResult,
    Decision,
    InstallOptions,
    InstallPhase,
    InstallState,
    VersionInfo,
)

from .session import InstallSession
from .uninstaller import Uninstaller

logger = logging.getLogger(__name__)


class Installer:
    """Installs a list of root nodes and everything they depend on.

    Work is processed one node at a time from a worklist. A node whose dedup
    key was seen before becomes a mirror of the first node with that key.
    Children of a settled node go to the front of the worklist in declared
    order, so the tree is walked depth first.

    Args:
        project: The project receiving the packages.
        session: Command state; a fresh one is created when omitted.
        prompt: Confirmation callback used before replacing a package.
    """

    def __init__(
        self,
        project: Project,
        session: Optional[InstallSession] = None,
        prompt: Confirm = ask_yes_no,
    ):
        self.project = project
        self.session = session or InstallSession()
        self.prompt = prompt
        self.arbiter = VersionArbiter(self.session.get_expected_version)
        self.failures: List[str] = []

    def install_all(
        self, root_nodes: Iterable[PackageNode], options: InstallOptions
    ) -> List[PackageNode]:
        """Install ``root_nodes`` and their dependency trees.

        Failures are recorded on the failing node and do not stop the run.
        They are logged together once the worklist is drained.
        """
        root_nodes = list(root_nodes)
        worklist = deque(root_nodes)
        with Timer() as timer:
            while worklist:
                node = worklist.popleft()
                key = dedup_key(node)
                prior = self.session.installed_map.get(key)
                if prior is not None:
                    self.project.arena.set_mirror(node, prior)
                    continue
                self.session.installed_map[key] = node

                if self.install(node, options):
                    children = self.expand_dependencies(node)
                    worklist.extendleft(reversed(children))

        if is_debug_enabled(logger):
            logger.debug(
                "install finished",
                extra=extra_context(
                    event="install_all",
                    component="installer",
                    count=len(self.session.installed_map),
                    duration_ms=timer.duration_ms(),
                ),
            )
        for failure in self.failures:
            logger.warning(failure)
        return root_nodes

    def expand_dependencies(self, node: PackageNode) -> List[PackageNode]:
        """Child nodes of a settled node, minus the ones the manifest ignores."""
        children = to_package_list(
            node.dep, self.project.lock, node.repository.get_dep_endpoint()
        )
        kept = []
        for child in children:
            if self.project.is_ignored(child.name):
                logger.debug("ignore dependence %s of %s", child.name, node.name)
                continue
            kept.append(child)
        node.set_dependencies(kept)
        return kept

    def _use_existing(self, node: PackageNode, existing: PackageNode) -> None:
        node.init_install_info(CheckResult(
            name=existing.name,
            version=existing.install_version,
            installed=True,
            new_installed=existing.new_installed,
            root=existing.root,
            main=existing.main,
            dep=existing.dep,
            endpoint=existing.endpoint,
            resolved_url=existing.get_resolved_url(),
            meta_data=existing.meta_data,
        ))
        logger.debug("use installed package %s@%s", existing.name, existing.install_version)

    def install(self, node: PackageNode, options: InstallOptions) -> bool:
        """Run the install step for one node.

        Returns:
            True when the node ends up installed (freshly or by reusing the
            installed package), False when it failed or was skipped.
        """
        if node.install_state is InstallState.FAILED:
            # failed before reaching the worklist, e.g. an unparsable specifier
            node.phase = InstallPhase.FAILED
            self.failures.append(f"install {node} fail: {node.failure_reason}")
            return False

        repository = node.repository
        repository.cache = self.session.version_cache

        fetch_version = self.session.get_expected_version(node.name) or node.version
        locked = bool(options.use_lock_info and node.install_version)
        if locked:
            fetch_version = node.install_version

        temp_dir = None
        try:
            node.phase = InstallPhase.RESOLVING
            existing = self.project.find_installed(node.name)
            decision = self.arbiter.arbitrate(node, existing, fetch_version, options)
            if decision is Decision.USE_EXISTING:
                self._use_existing(node, existing)
                return self._settle(node)

            node.phase = InstallPhase.FETCHING_METADATA
            if locked and node.get_resolved_url():
                info = VersionInfo(
                    name=node.name, version=node.install_version, url=node.get_resolved_url()
                )
            elif repository.need_resolve():
                info = repository.fetch_available_version(fetch_version)
                existing = self.project.find_installed(info.name or node.name)
                decision = self.arbiter.arbitrate(
                    node, existing, info.version, options, ignore_conflict=False
                )
                if decision is Decision.USE_EXISTING:
                    self._use_existing(node, existing)
                    return self._settle(node)
                info = repository.fetch_version_metadata(info)
            else:
                info = VersionInfo(name=node.name, version=node.version)

            node.phase = InstallPhase.DOWNLOADING
            logger.info("install %s%s...", repository.prefix(), node.get_name_version_info())
            download = repository.download(info)
            temp_dir = download.temp_dir

            meta = self.project.read_package_manifest(download.dir, find_down=True)
            result = CheckResult(
                name=meta.name or download.name or node.name,
                version=meta.version or download.version,
                root=meta.root,
                main=meta.main,
                dep=meta.dep,
                resolved_url=download.resolved_url,
                temp_dir=download.temp_dir,
                meta_data=meta.meta_data,
            )

            node.phase = InstallPhase.CHECKING_CONFLICT
            existing = self.project.find_installed(result.name)
            decision = self.arbiter.arbitrate(
                node, existing, result.version, options, ignore_conflict=False
            )
            if decision is Decision.USE_EXISTING:
                self._use_existing(node, existing)
                return self._settle(node)

            node.phase = InstallPhase.PLACING
            node.init_install_info(result)
            self.place(node, result.root, options)
            return self._settle(node)
        except UserCancelled as exc:
            logger.info("%s", exc)
            node.set_install_state(InstallState.SKIPPED, str(exc))
            node.phase = InstallPhase.FAILED
            return False
        except (CompkgError, OSError) as exc:
            reason = getattr(exc, "reason", None) or str(exc)
            node.set_install_state(InstallState.FAILED, reason)
            node.phase = InstallPhase.FAILED
            self.failures.append(f"install {node} fail: {reason}")
            logger.debug("install %s fail", node, exc_info=True)
            return False
        finally:
            if temp_dir:
                try:
                    remove_dir(temp_dir)
                except OSError as exc:
                    logger.warning("remove temp dir %s fail: %s", temp_dir, exc)
            node.temp_dir = None

    def _settle(self, node: PackageNode) -> bool:
        node.set_install_state(InstallState.INSTALLED)
        node.phase = InstallPhase.INSTALLED
        if node.new_installed and not node.already_installed:
            logger.info("install %s done", node.get_name_version_info())
        return True

    def place(self, node: PackageNode, package_dir: str, options: InstallOptions) -> None:
        """Move a downloaded package into the project, replacing an older install.

        Raises:
            UserCancelled: The operator declined the replacement.
            UninstallFailure: The installed package could not be removed.
        """
        existing = self.project.find_installed(node.name)
        if existing is not None:
            if options.confirm:
                operation = "Degrade" if node.degrade else "Upgrade"
                question = (
                    f"{operation} {node.name} "
                    f"{existing.install_version} -> {node.install_version} [y/n]"
                )
                if not self.prompt(question):
                    raise UserCancelled(f"skip package {node} install")

            new_dep_names = set((node.dep or {}).keys())

            def can_uninstall(target: PackageNode) -> bool:
                if target.name in new_dep_names:
                    logger.warning("%s is still required by %s, keep it", target.name, node.name)
                    return False
                return True

            outcomes = Uninstaller(self.project, prompt=self.prompt).uninstall(
                existing,
                remove_dep=True,
                confirm=False,
                can_uninstall=can_uninstall,
                force_target=True,
            )
            if not outcomes[0].uninstalled:
                raise UninstallFailure(f"uninstall existed package {existing} fail")

        self.project.add_installed(node, package_dir)
