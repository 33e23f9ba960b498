"""Argument parsing functionality for compkg."""

import argparse
from typing import List, Optional


def _add_common_options(parser):
    parser.add_argument("--install-dir",
                        dest="INSTALL_DIR",
                        help="Install directory relative to the project root (default: dep)",
                        action="store",
                        type=str)
    parser.add_argument("--root",
                        dest="ROOT",
                        help="Project root directory (default: nearest directory holding the manifest)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if any package failed.",
                        action="store_true")


def _add_save_options(parser):
    save_group = parser.add_mutually_exclusive_group()
    save_group.add_argument("--save",
                            dest="SAVE_TO_DEP",
                            help="Save to the manifest `dependencies`",
                            action="store_true")
    save_group.add_argument("--save-dev",
                            dest="SAVE_TO_DEV_DEP",
                            help="Save to the manifest `devDependencies`",
                            action="store_true")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="compkg",
        description="compkg - front-end component package manager",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="action", metavar="<command>")
    subparsers.required = True

    install = subparsers.add_parser(
        "install", help="Install components (all manifest dependencies when none given)"
    )
    install.add_argument("components", nargs="*", metavar="SPEC",
                         help="name[@version], owner/name, endpoint:path, ./local/path, url or alias=spec")
    _add_save_options(install)
    install.add_argument("--force-latest",
                         dest="FORCE_LATEST",
                         help="Install the latest allowed version even when an installed one satisfies",
                         action="store_true")
    install.add_argument("-y", "--no-confirm",
                         dest="NO_CONFIRM",
                         help="Do not ask before replacing installed packages",
                         action="store_true")
    install.add_argument("--production",
                         dest="PRODUCTION",
                         help="With no components, skip the manifest `devDependencies`",
                         action="store_true")
    _add_common_options(install)

    update = subparsers.add_parser(
        "update", help="Update declared components to their newest allowed version"
    )
    update.add_argument("components", nargs="*", metavar="NAME")
    _add_save_options(update)
    update.add_argument("-y", "--no-confirm",
                        dest="NO_CONFIRM",
                        help="Do not ask before replacing installed packages",
                        action="store_true")
    _add_common_options(update)

    uninstall = subparsers.add_parser("uninstall", help="Uninstall components")
    uninstall.add_argument("components", nargs="+", metavar="NAME")
    _add_save_options(uninstall)
    uninstall.add_argument("--ignore-dep",
                           dest="IGNORE_DEP",
                           help="Keep the dependencies of the uninstalled packages",
                           action="store_true")
    uninstall.add_argument("-y", "--no-confirm",
                           dest="NO_CONFIRM",
                           help="Do not ask before removing packages",
                           action="store_true")
    _add_common_options(uninstall)

    list_cmd = subparsers.add_parser("list", aliases=["ls"], help="List installed components")
    list_cmd.add_argument("-p", "--package",
                          dest="PACKAGE",
                          help="Only show this installed package",
                          action="store",
                          type=str)
    list_cmd.add_argument("-u", "--available-update",
                          dest="AVAILABLE_UPDATE",
                          help="Show newer versions available for installed packages",
                          action="store_true")
    list_cmd.add_argument("--depth",
                          dest="DEPTH",
                          help="Tree depth to print (default: 2)",
                          action="store",
                          type=int,
                          default=2)
    _add_common_options(list_cmd)

    search = subparsers.add_parser("search", help="Search components: [type:][owner/]key")
    search.add_argument("key", metavar="KEY")
    search.add_argument("--owner",
                        dest="OWNER",
                        help="Repository owner for git endpoints",
                        action="store",
                        type=str)
    _add_common_options(search)

    return parser


def parse_args(argv: Optional[List[str]] = None):
    """Parses the arguments passed to the program."""
    args = build_parser().parse_args(argv)
    if args.action == "ls":
        args.action = "list"
    return args
