"""compkg - front-end component package manager

    Returns:
        int: Exit code
"""
import logging
import sys

from args import parse_args
from cli_config import apply_config_overrides
from common.errors import CompkgError, DownloadFailure
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from common.prompt import always_yes, ask_yes_no
from constants import ExitCodes
from project.node import flatten
from versioning.models import InstallOptions, InstallState, UninstallOptions

logger = logging.getLogger(__name__)


def _has_failures(nodes) -> bool:
    return any(
        node.get_real_node().install_state is InstallState.FAILED for node in flatten(nodes)
    )


def run_command(args) -> ExitCodes:
    """Dispatch the parsed subcommand and map its outcome to an exit code."""
    # command modules import the engine, keep --help light
    from commands.install import install_components
    from commands.listing import list_installed_components
    from commands.search import search_components
    from commands.uninstall import uninstall_components
    from commands.update import update_components

    command = args.action
    root = getattr(args, "ROOT", None)
    prompt = always_yes if getattr(args, "NO_CONFIRM", False) else ask_yes_no
    failed = False

    if command in ("install", "update"):
        options = InstallOptions(
            force_latest=getattr(args, "FORCE_LATEST", False),
            confirm=not args.NO_CONFIRM,
            save_to_dep=args.SAVE_TO_DEP,
            save_to_dev_dep=args.SAVE_TO_DEV_DEP,
        )
        if command == "install":
            if not args.components:
                options.install_all_dep = True
                options.install_all_dev_dep = not args.PRODUCTION
            nodes = install_components(args.components, options, root=root, prompt=prompt)
        else:
            nodes = update_components(args.components, options, root=root, prompt=prompt)
        failed = _has_failures(nodes)
    elif command == "uninstall":
        options = UninstallOptions(
            remove_dep=not args.IGNORE_DEP,
            confirm=not args.NO_CONFIRM,
            save_to_dep=args.SAVE_TO_DEP,
            save_to_dev_dep=args.SAVE_TO_DEV_DEP,
        )
        outcomes = uninstall_components(args.components, options, root=root, prompt=prompt)
        failed = any(
            not (outcome.uninstalled or outcome.not_existed)
            for outcome in outcomes
            if outcome.referenced_by is None
        )
    elif command == "list":
        list_installed_components(
            root=root,
            name=args.PACKAGE,
            available_update=args.AVAILABLE_UPDATE,
            depth=args.DEPTH,
        )
    elif command == "search":
        failed = search_components(args.key, owner=args.OWNER) is None

    if failed:
        logger.warning("One or more packages were not processed successfully.")
        if args.ERROR_ON_WARNINGS:
            logger.error("Warnings present, exiting with non-zero status code.")
            return ExitCodes.EXIT_WARNINGS
    return ExitCodes.SUCCESS


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action),
        )

    try:
        apply_config_overrides(args)
        code = run_command(args)
    except DownloadFailure as exc:
        logger.error("%s", exc)
        code = ExitCodes.CONNECTION_ERROR
    except CompkgError as exc:
        logger.error("%s", exc)
        code = ExitCodes.FILE_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        code = ExitCodes.FILE_ERROR

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit", component="cli", action=args.action, outcome=code.name
            ),
        )
    return code.value


if __name__ == "__main__":
    sys.exit(main())
