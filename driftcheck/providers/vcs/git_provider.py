"""Git-backed implementation of the version-control interface."""

from __future__ import annotations

import subprocess
from pathlib import Path

from loguru import logger

from driftcheck.core.exceptions import VCSError
from driftcheck.interfaces.vcs_provider import VCSProvider


def find_git_root(start: Path | None = None) -> Path:
    """Return the top-level directory of the repository containing start.

    Raises:
        VCSError: If start is not inside a git repository
    """
    cwd = (start or Path.cwd()).resolve()
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            text=True,
            capture_output=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise VCSError("git executable not found", hint="Install git and retry.") from e
    if proc.returncode != 0:
        raise VCSError(
            "Not a git repository (or any parent up to mount point)",
            hint="Run driftcheck from inside a git working tree.",
        )
    return Path(proc.stdout.strip())


class GitProvider(VCSProvider):
    """Runs git subcommands in a working tree and returns their stdout."""

    def __init__(self, root: Path, binary: str = "git"):
        self._root = root
        self._binary = binary

    @property
    def root(self) -> Path:
        return self._root

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self._binary, *args],
                cwd=str(self._root),
                text=True,
                capture_output=True,
                check=False,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise VCSError("git executable not found", hint="Install git and retry.") from e

    def upstream(self) -> str | None:
        proc = self._run("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def ref_exists(self, ref: str) -> bool:
        proc = self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        return proc.returncode == 0

    def remote_head(self, remote: str = "origin") -> str | None:
        proc = self._run("symbolic-ref", "--quiet", "--short", f"refs/remotes/{remote}/HEAD")
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def diff(self, base: str, head: str) -> str:
        proc = self._run("diff", "--no-color", "--no-ext-diff", f"{base}..{head}")
        if proc.returncode != 0:
            raise VCSError(f"git diff {base}..{head} failed: {proc.stderr.strip()}")
        return proc.stdout

    def recent_log(self, count: int) -> str:
        if count <= 0:
            return ""
        proc = self._run(
            "log",
            f"-{count}",
            "--no-color",
            "--pretty=format:commit %h %s",
            "-p",
            "--unified=0",
        )
        if proc.returncode != 0:
            # Not fatal - suppression simply has nothing to work with
            logger.debug(f"git log failed: {proc.stderr.strip()}")
            return ""
        return proc.stdout
