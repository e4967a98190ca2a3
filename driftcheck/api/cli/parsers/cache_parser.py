"""Cache command argument parser for driftcheck CLI."""

import argparse
from typing import Any, cast


def add_cache_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "cache",
        help="Inspect or clear the generation cache",
    )
    actions = parser.add_subparsers(dest="cache_action", metavar="ACTION")
    actions.required = True
    actions.add_parser("clear", help="Remove all cache entries and counters")
    actions.add_parser("stats", help="Show entry count, size and hit rate")

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_cache_subparser"]
