"""Argument parsers for driftcheck subcommands."""

from .cache_parser import add_cache_subparser
from .check_parser import add_check_subparser, add_hook_subparser
from .setup_parser import add_config_subparser, add_init_subparser, add_install_hook_subparser

__all__ = [
    "add_cache_subparser",
    "add_check_subparser",
    "add_config_subparser",
    "add_hook_subparser",
    "add_init_subparser",
    "add_install_hook_subparser",
]
