"""Check and pre-push hook commands."""

from __future__ import annotations

import argparse
from pathlib import Path

from loguru import logger
from rich.console import Console

from driftcheck.core.config import Config
from driftcheck.core.exceptions import DriftcheckError
from driftcheck.providers.llm import create_llm_provider
from driftcheck.providers.search import RipgrepProvider
from driftcheck.providers.vcs import GitProvider, find_git_root
from driftcheck.services.cache_store import CacheStore
from driftcheck.services.check_service import DriftCheckService
from driftcheck.services.generation import StructuredGenerator
from driftcheck.tui import make_review_runner
from driftcheck.tui.keys import tty_available


def build_check_service(
    root: Path, config: Config, console: Console, interactive: bool
) -> DriftCheckService:
    """Wire the real git, ripgrep and LLM adapters into a DriftCheckService.

    Raises:
        ConfigError: If the configured LLM provider cannot be created
    """
    cache = CacheStore.for_directory(
        config.cache.get_cache_dir(root),
        ttl=config.cache.ttl,
        enabled=config.cache.enabled,
    )
    runner = (
        make_review_runner(config.tui.theme, console, config.tui.tick_ms)
        if interactive
        else None
    )
    return DriftCheckService(
        config=config,
        vcs=GitProvider(root),
        search_provider=RipgrepProvider(root, config.search.binary, config.search.timeout),
        generator=StructuredGenerator(create_llm_provider(config.llm)),
        cache=cache,
        console=console,
        review_runner=runner,
    )


def _interactive(console: Console, no_tui: bool = False) -> bool:
    return not no_tui and console.is_terminal and tty_available()


async def check_command(args: argparse.Namespace, console: Console) -> int:
    root = find_git_root()
    config = Config.load(root)
    if not config.is_enabled():
        console.print("driftcheck is disabled.")
        return 0

    interactive = _interactive(console, args.no_tui)
    service = build_check_service(root, config, console, interactive)
    return await service.check(args.range, interactive_allowed=interactive)


async def hook_command(args: argparse.Namespace, console: Console) -> int:
    root = find_git_root()
    if Config.find_config_path(root) is None:
        logger.debug("No .driftcheck.toml; allowing push")
        return 0

    config = Config.load(root)
    if not config.is_enabled():
        logger.debug("driftcheck disabled; allowing push")
        return 0

    interactive = _interactive(console)
    try:
        service = build_check_service(root, config, console, interactive)
    except DriftcheckError as e:
        console.print(f"driftcheck: {e.message}")
        if e.hint:
            console.print(f"Hint: {e.hint}")
        return 0 if config.general.allow_push_on_error else 1

    return await service.check(None, interactive_allowed=interactive)
