"""Core data model shared by the pipeline stages."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum

from driftcheck.core.exceptions import RemediationStateError

# Rough approximation used everywhere a token count is needed
TOKEN_CHARS_RATIO = 4


def estimate_tokens(text: str) -> int:
    """Estimate token count for text (~4 characters per token)."""
    return len(text) // TOKEN_CHARS_RATIO


def ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Return True if the inclusive line ranges [a_start, a_end] and [b_start, b_end] intersect."""
    return a_start <= b_end and b_start <= a_end


@dataclass(frozen=True)
class DiffHunk:
    """A single ``@@`` hunk of a unified diff."""

    path: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    text: str

    @property
    def new_end(self) -> int:
        return self.new_start + max(self.new_count, 1) - 1


@dataclass(frozen=True)
class ChangeSet:
    """Bounded representation of the change being pushed. Immutable once built."""

    base: str
    head: str
    hunks: tuple[DiffHunk, ...]
    truncated: bool = False
    token_estimate: int = 0

    @property
    def files(self) -> list[str]:
        seen: list[str] = []
        for hunk in self.hunks:
            if hunk.path not in seen:
                seen.append(hunk.path)
        return seen

    @property
    def is_empty(self) -> bool:
        return not self.hunks

    @property
    def text(self) -> str:
        """Render the hunks back into a compact diff for prompting and fingerprinting."""
        parts: list[str] = []
        current: str | None = None
        for hunk in self.hunks:
            if hunk.path != current:
                parts.append(f"--- a/{hunk.path}\n+++ b/{hunk.path}\n")
                current = hunk.path
            parts.append(
                f"@@ -{hunk.old_start},{hunk.old_count} "
                f"+{hunk.new_start},{hunk.new_count} @@\n"
            )
            parts.append(hunk.text)
        return "".join(parts)


@dataclass(frozen=True)
class SearchQuery:
    """A search pattern proposed by the query planner."""

    pattern: str
    path_glob: str | None = None
    rationale: str = ""


@dataclass(frozen=True)
class DocHit:
    """A contiguous block of documentation lines matched by a query."""

    path: str
    start_line: int
    end_line: int
    snippet: str
    query_index: int = 0
    query: str = ""

    @property
    def key(self) -> tuple[str, int, int]:
        return (self.path, self.start_line, self.end_line)

    @property
    def token_estimate(self) -> int:
        return estimate_tokens(self.path) + estimate_tokens(self.snippet) + 1

    def line_of(self, text: str) -> int | None:
        """Return the absolute line number of the first snippet line containing text."""
        needle = text.strip()
        if not needle:
            return None
        for offset, line in enumerate(self.snippet.splitlines()):
            if needle in line:
                return self.start_line + offset
        return None


@dataclass(frozen=True)
class RecentCommit:
    """A recent commit and the post-image line ranges it touched per file."""

    sha: str
    subject: str
    touched: dict[str, tuple[tuple[int, int], ...]] = field(default_factory=dict)

    def touches(self, path: str, start: int, end: int) -> bool:
        for r_start, r_end in self.touched.get(path, ()):
            if ranges_overlap(start, end, r_start, r_end):
                return True
        return False


class IssueState(str, Enum):
    """Per-issue review state."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    SKIPPED = "skipped"
    ERROR = "error"

    @property
    def is_resolved(self) -> bool:
        return self in (IssueState.APPLIED, IssueState.SKIPPED)


ALLOWED_TRANSITIONS: dict[IssueState, frozenset[IssueState]] = {
    IssueState.PENDING: frozenset({IssueState.APPLYING, IssueState.SKIPPED}),
    IssueState.APPLYING: frozenset({IssueState.APPLIED, IssueState.ERROR}),
    IssueState.ERROR: frozenset({IssueState.APPLYING}),
    IssueState.APPLIED: frozenset(),
    IssueState.SKIPPED: frozenset(),
}


def issue_identity(path: str, start_line: int, end_line: int, claim: str) -> str:
    digest = hashlib.sha256(
        f"{path}\0{start_line}\0{end_line}\0{claim.strip()}".encode("utf-8")
    ).hexdigest()
    return digest[:12]


@dataclass
class DriftIssue:
    """A documented claim that contradicts the changed code."""

    id: str
    path: str
    start_line: int
    end_line: int
    claim: str
    evidence: str
    description: str = ""
    confidence: float = 0.0
    suggested_fix: str | None = None
    state: IssueState = IssueState.PENDING
    error: str | None = None

    @classmethod
    def create(
        cls,
        path: str,
        start_line: int,
        end_line: int,
        claim: str,
        evidence: str,
        description: str = "",
        confidence: float = 0.0,
        suggested_fix: str | None = None,
    ) -> DriftIssue:
        return cls(
            id=issue_identity(path, start_line, end_line, claim),
            path=path,
            start_line=start_line,
            end_line=end_line,
            claim=claim,
            evidence=evidence,
            description=description,
            confidence=confidence,
            suggested_fix=suggested_fix,
        )

    @property
    def location(self) -> str:
        if self.end_line > self.start_line:
            return f"{self.path}:{self.start_line}-{self.end_line}"
        return f"{self.path}:{self.start_line}"

    def transition(self, new_state: IssueState, error: str | None = None) -> None:
        """Move to new_state, enforcing the review state graph."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RemediationStateError(
                f"Issue {self.id} cannot move from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
        self.error = error if new_state is IssueState.ERROR else None


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ChangeSet",
    "DiffHunk",
    "DocHit",
    "DriftIssue",
    "IssueState",
    "RecentCommit",
    "SearchQuery",
    "TOKEN_CHARS_RATIO",
    "estimate_tokens",
    "issue_identity",
    "ranges_overlap",
]
