"""``update`` command: reinstall declared packages at their newest allowed version."""

import dataclasses
from typing import List, Optional

from common.prompt import Confirm, ask_yes_no
from project.node import PackageNode
from versioning.models import InstallOptions

from .install import install_components


def update_components(
    components: List[str],
    options: InstallOptions,
    root: Optional[str] = None,
    prompt: Confirm = ask_yes_no,
) -> List[PackageNode]:
    """Update ``components``, or every declared dependency when none are given.

    Named components are looked up in ``devDependencies`` when saving there,
    otherwise in ``dependencies``. Without names and without a save target
    both lists are updated.
    """
    opts = dataclasses.replace(options, update=True, force_latest=True)
    if components:
        opts.save_to_dep = not opts.save_to_dev_dep
    else:
        if not opts.save_to_dep and not opts.save_to_dev_dep:
            opts.save_to_dep = opts.save_to_dev_dep = True
        opts.install_all_dep = opts.save_to_dep
        opts.install_all_dev_dep = opts.save_to_dev_dep
    return install_components(components, opts, root=root, prompt=prompt)
