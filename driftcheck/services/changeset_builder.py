"""Builds a bounded ChangeSet from unified diff text."""

from __future__ import annotations

import re
from collections import defaultdict

from loguru import logger

from driftcheck.core.exceptions import EmptyChangeError
from driftcheck.core.models import ChangeSet, DiffHunk, estimate_tokens
from driftcheck.interfaces.vcs_provider import VCSProvider

_FILE_HEADER = re.compile(r"^diff --git a/(?P<old>.+?) b/(?P<new>.+)$")
_HUNK_HEADER = re.compile(
    r"^@@ -(?P<os>\d+)(?:,(?P<oc>\d+))? \+(?P<ns>\d+)(?:,(?P<nc>\d+))? @@"
)


def parse_unified_diff(text: str) -> list[DiffHunk]:
    """Parse ``git diff`` output into hunks, in order of appearance.

    Binary files and pure renames produce no hunks.
    """
    hunks: list[DiffHunk] = []
    path: str | None = None
    header: re.Match[str] | None = None
    body: list[str] = []

    def flush() -> None:
        if path is not None and header is not None:
            hunks.append(
                DiffHunk(
                    path=path,
                    old_start=int(header["os"]),
                    old_count=int(header["oc"]) if header["oc"] is not None else 1,
                    new_start=int(header["ns"]),
                    new_count=int(header["nc"]) if header["nc"] is not None else 1,
                    text="".join(body),
                )
            )

    for line in text.replace("\r\n", "\n").splitlines(keepends=True):
        stripped = line.rstrip("\n")
        file_match = _FILE_HEADER.match(stripped)
        if file_match:
            flush()
            path, header, body = file_match["new"], None, []
            continue
        if stripped.startswith("+++ ") and header is None:
            target = stripped[4:]
            if target.startswith("b/"):
                path = target[2:]
            continue
        hunk_match = _HUNK_HEADER.match(stripped)
        if hunk_match and path is not None:
            flush()
            header, body = hunk_match, []
            continue
        if header is not None and stripped[:1] in (" ", "+", "-", "\\"):
            body.append(line if line.endswith("\n") else line + "\n")

    flush()
    return hunks


def truncate_hunks(
    hunks: list[DiffHunk], max_tokens: int
) -> tuple[list[DiffHunk], bool]:
    """Shrink the hunk list until its text fits max_tokens.

    Whole files go first, smallest per-file diff first (ties by path). When a
    single file is left, its hunks are dropped smallest first (ties by
    position). At least one hunk always survives.
    """

    def fits(candidate: list[DiffHunk]) -> bool:
        changeset = ChangeSet(base="", head="", hunks=tuple(candidate))
        return estimate_tokens(changeset.text) <= max_tokens

    if fits(hunks):
        return hunks, False

    sizes: dict[str, int] = defaultdict(int)
    for hunk in hunks:
        sizes[hunk.path] += len(hunk.text)

    kept = list(hunks)
    for path in sorted(sizes, key=lambda p: (sizes[p], p))[:-1]:
        kept = [h for h in kept if h.path != path]
        logger.debug(f"Diff over budget; dropped {path}")
        if fits(kept):
            return kept, True

    by_size = sorted(range(len(kept)), key=lambda i: (len(kept[i].text), i))
    dropped: set[int] = set()
    for index in by_size[:-1]:
        dropped.add(index)
        hunk = kept[index]
        logger.debug(f"Diff over budget; dropped hunk at {hunk.path}:{hunk.new_start}")
        remaining = [h for i, h in enumerate(kept) if i not in dropped]
        if fits(remaining):
            return remaining, True
    return [h for i, h in enumerate(kept) if i not in dropped], True


class ChangeSetBuilder:
    def __init__(self, vcs: VCSProvider):
        self._vcs = vcs

    def build(self, base: str, head: str, max_tokens: int) -> ChangeSet:
        """Diff base..head into a ChangeSet within max_tokens.

        Raises:
            EmptyChangeError: If the diff has no hunks
            VCSError: If the diff could not be computed
        """
        hunks = parse_unified_diff(self._vcs.diff(base, head))
        if not hunks:
            raise EmptyChangeError()

        kept, truncated = truncate_hunks(hunks, max_tokens)
        if truncated:
            logger.warning(
                f"Diff exceeds {max_tokens} tokens; kept {len(kept)} of {len(hunks)} hunks"
            )
        changeset = ChangeSet(base=base, head=head, hunks=tuple(kept), truncated=truncated)
        return ChangeSet(
            base=base,
            head=head,
            hunks=changeset.hunks,
            truncated=truncated,
            token_estimate=estimate_tokens(changeset.text),
        )
