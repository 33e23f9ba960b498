"""Decide what to do when a requested package is already installed."""

import logging
from typing import Callable, Optional

from common.logging_utils import extra_context, is_debug_enabled
from . import semver_ops
from .models import Decision, InstallOptions

logger = logging.getLogger(__name__)


class VersionArbiter:
    """Arbitrates between an installed version and a newly requested one.

    Args:
        expected_version: Lookup of the version the operator asked for by name
            on the command line; returns None for names that were not given
            explicitly.
    """

    def __init__(self, expected_version: Callable[[str], Optional[str]]):
        self._expected_version = expected_version

    def arbitrate(
        self,
        node,
        existing,
        requested_version: Optional[str],
        options: InstallOptions,
        ignore_conflict: Optional[bool] = None,
    ) -> Decision:
        """Return the install decision for ``node`` against ``existing``.

        Mutates ``node.old_version``, ``node.degrade`` and ``node.conflict`` and
        logs a conflict warning when versions diverge.

        Args:
            node: The package node being installed.
            existing: The installed node with the same name, or None.
            requested_version: Version range or exact version being requested.
            options: Install options (``force_latest`` matters here).
            ignore_conflict: Replace on a newer request even when it conflicts.
                Defaults to True when the node's declared version is not
                valid semver (ranges, tags, branches).
        """
        if existing is None:
            return Decision.INSTALL

        if ignore_conflict is None:
            ignore_conflict = not semver_ops.valid(node.version)

        old_version = existing.install_version
        is_satisfy = semver_ops.satisfies(old_version, requested_version)
        if is_debug_enabled(logger):
            logger.debug(
                "%s -> %s - %s : %s",
                node, old_version, requested_version, is_satisfy,
                extra=extra_context(
                    event="arbitrate", component="arbiter", package_name=node.name
                ),
            )

        if is_satisfy and not options.force_latest:
            node.old_version = None
            return Decision.USE_EXISTING

        has_conflict = semver_ops.is_conflict(old_version, requested_version)
        is_newer = semver_ops.is_newer(requested_version, old_version)
        logger.debug(
            "version %s vs %s conflict: %s, newer: %s",
            old_version, requested_version, has_conflict, is_newer,
        )

        if is_newer and (
            (has_conflict and options.force_latest) or not has_conflict or ignore_conflict
        ):
            if requested_version and not existing.new_installed:
                node.old_version = old_version
            logger.debug("%s replace old: %s use %s", node.name, old_version, requested_version)
            return Decision.REPLACE

        if has_conflict:
            node.conflict = True
            pkg_info = str(node)
            refer = getattr(node, "referenced_by", None)
            if refer is not None:
                pkg_info += f"(dependence of {refer.get_real_node()})"
            logger.warning(
                "install %s version %s is conflict with installed package %s(%s)",
                pkg_info, requested_version, existing.get_name_version_info(), old_version,
            )

        explicit = self._expected_version(node.name)
        if explicit and requested_version != old_version:
            # only an explicitly requested version may upgrade or degrade in place
            node.degrade = not is_newer
            node.old_version = old_version
            logger.debug("change %s using %s", existing, requested_version)
            return Decision.CONFLICT_WARN_THEN_DECIDE if has_conflict else Decision.REPLACE

        node.old_version = None
        return Decision.USE_EXISTING
