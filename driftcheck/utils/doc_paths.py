"""DocPathMatcher: documentation file selection with gitwildmatch semantics.

Include and ignore globs are compiled with ``pathspec`` and evaluated against
root-relative POSIX paths. The documentation set is ``include \\ ignore``.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from pathspec import PathSpec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern

# Never descend into these while expanding globs
_PRUNED_DIRS = frozenset({".git", "node_modules", ".venv", "venv", "__pycache__"})


def _compile_gitwildmatch(patterns: Iterable[str]) -> PathSpec:
    return PathSpec.from_lines(GitWildMatchPattern, patterns)


class DocPathMatcher:
    def __init__(self, root: Path, include: Iterable[str], ignore: Iterable[str] = ()):
        self.root = root.resolve()
        self._include = _compile_gitwildmatch(include)
        self._ignore = _compile_gitwildmatch(ignore)

    def _relative(self, path: Path) -> str | None:
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def matches(self, path: Path) -> bool:
        rel = self._relative(path)
        if rel is None:
            return False
        return self._include.match_file(rel) and not self._ignore.match_file(rel)

    def expand(self) -> list[Path]:
        """Return all matching documentation files, sorted by relative path."""
        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            # Prune in place so os.walk skips these subtrees
            dirnames[:] = sorted(
                d
                for d in dirnames
                if d not in _PRUNED_DIRS
                and not self._ignore.match_file(
                    (current / d).relative_to(self.root).as_posix() + "/"
                )
            )
            for name in filenames:
                candidate = current / name
                if self.matches(candidate):
                    found.append(candidate.relative_to(self.root))
        return sorted(found, key=lambda p: p.as_posix())


def filter_by_glob(files: Iterable[Path], glob: str | None) -> list[Path]:
    """Narrow root-relative files to those matching glob (gitwildmatch)."""
    if not glob:
        return list(files)
    spec = _compile_gitwildmatch([glob])
    return [f for f in files if spec.match_file(f.as_posix())]
