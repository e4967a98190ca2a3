"""Repository setup command parsers (init, install-hook, config)."""

import argparse
from typing import Any, cast


def add_init_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "init",
        help="Create .driftcheck.toml and install the pre-push hook",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file and hook",
    )
    return cast(argparse.ArgumentParser, parser)


def add_install_hook_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "install-hook",
        help="Install the git pre-push hook",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing pre-push hook",
    )
    return cast(argparse.ArgumentParser, parser)


def add_config_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "config",
        help="Show the effective configuration",
    )
    parser.add_argument(
        "--path",
        action="store_true",
        help="Print the configuration file path only",
    )
    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = [
    "add_config_subparser",
    "add_init_subparser",
    "add_install_hook_subparser",
]
