"""Cache command: clear or report on the generation cache."""

from __future__ import annotations

import argparse

from driftcheck.core.config import Config
from driftcheck.providers.vcs import find_git_root
from driftcheck.services.cache_store import CacheStore


def cache_command(args: argparse.Namespace) -> int:
    root = find_git_root()
    config = Config.load(root)
    store = CacheStore.for_directory(config.cache.get_cache_dir(root), ttl=config.cache.ttl)

    if args.cache_action == "clear":
        store.clear()
        print("Cache cleared.")
        return 0

    stats = store.stats()
    print("Cache statistics:")
    print(f"  Entries: {stats.entries}")
    print(f"  Size: {stats.size_bytes} bytes")
    print(f"  Hits: {stats.hits}")
    print(f"  Misses: {stats.misses}")
    print(f"  Hit rate: {stats.hit_rate:.1%}")
    print(f"  Location: {stats.path}")
    return 0
