"""driftcheck CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys

from rich.console import Console

from driftcheck.api.cli.commands import (
    cache_command,
    check_command,
    config_command,
    hook_command,
    init_command,
    install_hook_command,
)
from driftcheck.api.cli.parsers import (
    add_cache_subparser,
    add_check_subparser,
    add_config_subparser,
    add_hook_subparser,
    add_init_subparser,
    add_install_hook_subparser,
)
from driftcheck.core.config import Config
from driftcheck.core.exceptions import DriftcheckError
from driftcheck.utils.logging import configure_logging
from driftcheck.version import __version__


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="driftcheck",
        description="Pre-push gate that catches documentation drift",
    )
    parser.add_argument("--version", action="version", version=f"driftcheck {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True
    add_check_subparser(subparsers)
    add_hook_subparser(subparsers)
    add_cache_subparser(subparsers)
    add_init_subparser(subparsers)
    add_install_hook_subparser(subparsers)
    add_config_subparser(subparsers)
    return parser


async def async_main(args: argparse.Namespace, console: Console) -> int:
    try:
        if args.command == "check":
            return await check_command(args, console)
        if args.command == "hook":
            return await hook_command(args, console)
        if args.command == "cache":
            return cache_command(args)
        if args.command == "init":
            return init_command(args)
        if args.command == "install-hook":
            return install_hook_command(args)
        if args.command == "config":
            return config_command(args)
    except DriftcheckError as e:
        console.print(f"[bold red]Error:[/bold red] {e.message}", highlight=False)
        if e.hint:
            console.print(f"Hint: {e.hint}", style="dim", highlight=False)
        return 1
    raise AssertionError(f"Unhandled command {args.command!r}")


def main(argv: list[str] | None = None) -> None:
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(debug=Config.is_debug())
    console = Console(stderr=True)
    try:
        code = asyncio.run(async_main(args, console))
    except KeyboardInterrupt:
        console.print("driftcheck: interrupted")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
