"""Pre-push hook installation."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from driftcheck.core.exceptions import DriftcheckError

HOOK_MARKER = "driftcheck"

HOOK_SCRIPT = """#!/bin/sh
# driftcheck pre-push hook
# This hook is called with the following parameters:
#   $1 -- Name of the remote to which the push is being done
#   $2 -- URL to which the push is being done

exec driftcheck hook
"""


def install_pre_push_hook(git_root: Path, force: bool = False) -> Path:
    """Write an executable pre-push hook into the repository.

    An existing hook that was not written by driftcheck is only replaced
    when force is set.

    Raises:
        DriftcheckError: If a foreign hook exists or the hook cannot be written
    """
    hooks_dir = git_root / ".git" / "hooks"
    hook_path = hooks_dir / "pre-push"

    try:
        hooks_dir.mkdir(parents=True, exist_ok=True)
        if hook_path.exists() and not force:
            if HOOK_MARKER not in hook_path.read_text(encoding="utf-8", errors="replace"):
                raise DriftcheckError(
                    "A pre-push hook already exists",
                    hint=(
                        "Use --force to overwrite, or manually add "
                        "'driftcheck hook' to your existing hook."
                    ),
                )
        hook_path.write_text(HOOK_SCRIPT, encoding="utf-8")
        mode = hook_path.stat().st_mode
        os.chmod(hook_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        raise DriftcheckError(f"Hook installation failed: {e}") from e

    return hook_path
