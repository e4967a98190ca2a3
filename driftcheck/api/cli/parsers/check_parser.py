"""Check and hook command argument parsers for driftcheck CLI."""

import argparse
from typing import Any, cast


def add_check_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "check",
        help="Check the current change for documentation drift",
        description=(
            "Diff the change against its base, search the documentation for "
            "related text and report factual contradictions."
        ),
    )

    parser.add_argument(
        "--range",
        dest="range",
        metavar="RANGE",
        help="Explicit range to check (base..head, base...head or base)",
    )

    parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Print issues instead of opening the interactive review",
    )

    return cast(argparse.ArgumentParser, parser)


def add_hook_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "hook",
        help="Pre-push hook entry point",
        description=(
            "Run the check as a git pre-push hook. Pushes are allowed when the "
            "repository has no .driftcheck.toml or driftcheck is disabled."
        ),
    )
    # git passes the remote name and URL; they are not needed
    parser.add_argument("remote", nargs="?", help=argparse.SUPPRESS)
    parser.add_argument("url", nargs="?", help=argparse.SUPPRESS)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_check_subparser", "add_hook_subparser"]
