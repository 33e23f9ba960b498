"""``install`` command: install specifiers or everything the manifest declares."""

import logging
from typing import List, Optional

from common.errors import SpecifierError
from common.prompt import Confirm, ask_yes_no
from engine.installer import Installer
from engine.session import InstallSession
from engine.sync import ManifestSynchronizer
from project.node import PackageNode, dedupe, failed_package, to_package
from project.project import Project
from report import format_install_report, format_update_fail
from versioning.models import InstallOptions, SaveInfo

logger = logging.getLogger(__name__)


def install_components(
    components: List[str],
    options: InstallOptions,
    root: Optional[str] = None,
    prompt: Confirm = ask_yes_no,
    project: Optional[Project] = None,
) -> List[PackageNode]:
    """Install ``components``, or all manifest dependencies when none are given.

    Specifiers accept ``name[@version|@range|@tag]``, local paths starting with
    ``.``, ``..``, ``/`` or ``~``, archive URLs, ``owner/name``,
    ``endpoint:path`` and ``alias=specifier``.

    With ``options.update`` each specifier must already be declared in the
    chosen manifest list; its declared version is used when none is given.

    Returns:
        The root nodes, carrying their install outcome.

    Raises:
        ManifestWriteError: If saving to the manifest fails.
    """
    project = project or Project(root)
    save_info = SaveInfo(
        save_to_dep=options.save_to_dep,
        save_to_dev_dep=options.save_to_dev_dep,
        is_update=options.update,
    )

    to_install: List[PackageNode] = []
    if components:
        for item in components:
            try:
                node = to_package(item)
            except SpecifierError as exc:
                logger.warning("parse %s fail: %s", item, exc)
                to_install.append(failed_package(item, None, str(exc)))
                continue
            if options.update:
                if options.save_to_dep:
                    found = project.find_dep_in_manifest(node.name)
                else:
                    found = project.find_dev_dep_in_manifest(node.name)
                if found is None:
                    save_info.not_existed.append(item)
                    continue
                if not node.version:
                    node.version = found.version
                endpoint = node.endpoint if node.explicit_endpoint else found.endpoint
                node.init_repository(endpoint)
            to_install.append(node)
    else:
        if options.install_all_dep:
            to_install.extend(project.dependencies)
            save_info.all_dep = True
        if options.install_all_dev_dep:
            to_install.extend(project.dev_dependencies)
            save_info.all_dev_dep = True
        # a full reinstall follows the lock section
        if not options.update:
            options.use_lock_info = True

    to_install = dedupe(to_install)
    session = InstallSession()
    session.init_expected_versions(to_install)
    logger.debug("to install pkgs number: %d", len(to_install))

    installer = Installer(project, session=session, prompt=prompt)
    installed = installer.install_all(to_install, options)

    logger.info("%s", format_install_report(project, installed, options.update))
    if save_info.not_existed:
        logger.info("%s", format_update_fail(project, save_info.not_existed, options.save_to_dep))

    ManifestSynchronizer(project, session).save_install_info(installed, save_info)
    return installed
