"""``uninstall`` command."""

import logging
from typing import List, Optional

from common.prompt import Confirm, ask_yes_no
from engine.sync import ManifestSynchronizer
from engine.uninstaller import Uninstaller
from project.project import Project
from report import format_uninstall_report
from versioning.models import SaveInfo, UninstallOptions, UninstallOutcome

logger = logging.getLogger(__name__)


def uninstall_components(
    components: List[str],
    options: UninstallOptions,
    root: Optional[str] = None,
    prompt: Confirm = ask_yes_no,
    project: Optional[Project] = None,
) -> List[UninstallOutcome]:
    """Uninstall ``components`` one after another and update the manifest.

    Raises:
        ManifestWriteError: If saving to the manifest fails.
    """
    project = project or Project(root)
    if options.remove_dep:
        logger.warning(
            "it'll remove the dependence packages of the given uninstall package in the "
            "same time, use `--ignore-dep` option to disable remove dependence."
        )

    uninstaller = Uninstaller(project, prompt=prompt)
    result = uninstaller.uninstall_names(
        [str(item) for item in components],
        remove_dep=options.remove_dep,
        confirm=options.confirm,
    )
    logger.info("%s", format_uninstall_report(project, result))

    ManifestSynchronizer(project).save_uninstall_info(
        result,
        SaveInfo(save_to_dep=options.save_to_dep, save_to_dev_dep=options.save_to_dev_dep),
    )
    return result
