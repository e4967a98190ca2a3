"""Repository setup commands: init, install-hook and config."""

from __future__ import annotations

import argparse

from driftcheck.core.config import CONFIG_FILENAME, Config
from driftcheck.providers.vcs import find_git_root, install_pre_push_hook

DEFAULT_CONFIG_TEMPLATE = """\
# driftcheck configuration

[general]
enabled = true
allow_push_on_error = false
# fallback_base = "origin/main"

[docs]
paths = ["README.md", "docs/**/*.md"]
ignore = []
max_context_tokens = 8000

[diff]
max_tokens = 12000

[search]
max_queries = 10
max_workers = 4
context_lines = 3

[analysis]
confidence_threshold = 0.7
recent_commits = 10

[llm]
# "openai" (any OpenAI-compatible endpoint) or "claude-code-cli"
provider = "openai"
base_url = "https://api.openai.com/v1"
model = "gpt-4o"
timeout = 30
max_retries = 2

[tui]
theme = "default"
max_concurrent_fixes = 3

[cache]
enabled = true
ttl = 3600
"""


def init_command(args: argparse.Namespace) -> int:
    root = find_git_root()
    config_path = root / CONFIG_FILENAME

    if config_path.exists() and not args.force:
        print(f"Configuration file already exists at {config_path}")
        print("Use --force to overwrite.")
        return 0

    config_path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    # Fail early if the template ever drifts from the config model
    Config.load(root, require_file=True)
    print(f"Created configuration file: {config_path}")

    install_pre_push_hook(root, force=args.force)
    print("Installed pre-push hook")
    print("\nNext steps:")
    print("  1. Set your API key: export DRIFTCHECK_API_KEY=<your-key>")
    print(f"  2. Edit {CONFIG_FILENAME} to customize paths and settings")
    print("  3. Make some changes and push to test!")
    return 0


def install_hook_command(args: argparse.Namespace) -> int:
    root = find_git_root()
    hook_path = install_pre_push_hook(root, force=args.force)
    print(f"Pre-push hook installed: {hook_path}")
    return 0


def config_command(args: argparse.Namespace) -> int:
    root = find_git_root()
    if args.path:
        path = Config.find_config_path(root)
        if path is None:
            print(f"No configuration file found. Run 'driftcheck init' to create {CONFIG_FILENAME}.")
            return 1
        print(path)
        return 0

    config = Config.load(root)
    print(config.model_dump_json(indent=2))
    return 0
