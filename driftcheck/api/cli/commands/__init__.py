"""Command implementations for driftcheck CLI."""

from .cache import cache_command
from .check import check_command, hook_command
from .setup import config_command, init_command, install_hook_command

__all__ = [
    "cache_command",
    "check_command",
    "config_command",
    "hook_command",
    "init_command",
    "install_hook_command",
]
