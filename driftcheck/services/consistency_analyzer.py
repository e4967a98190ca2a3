"""Detects factual contradictions between a change and documentation hits."""

from __future__ import annotations

import re

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from driftcheck.core.models import ChangeSet, DocHit, DriftIssue, RecentCommit
from driftcheck.services.cache_store import CacheStore, fingerprint
from driftcheck.services.generation import StructuredGenerator
from driftcheck.services.prompts import analysis as prompts
from driftcheck.services.prompts import effective_prompt

_COMMIT_LINE = re.compile(r"^commit (?P<sha>[0-9a-fA-F]+)(?: (?P<subject>.*))?$")
_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(?P<start>\d+)(?:,(?P<count>\d+))? @@")


def parse_recent_log(text: str) -> list[RecentCommit]:
    """Parse ``git log -p --unified=0`` output into per-commit touched ranges.

    Ranges are in post-image coordinates. A pure deletion (count 0) touches
    the single line at its start position.
    """
    commits: list[RecentCommit] = []
    sha: str | None = None
    subject = ""
    touched: dict[str, list[tuple[int, int]]] = {}
    path: str | None = None

    def flush() -> None:
        if sha is not None:
            commits.append(
                RecentCommit(
                    sha=sha,
                    subject=subject,
                    touched={p: tuple(r) for p, r in touched.items()},
                )
            )

    for line in text.splitlines():
        commit_match = _COMMIT_LINE.match(line)
        if commit_match:
            flush()
            sha = commit_match["sha"]
            subject = (commit_match["subject"] or "").strip()
            touched = {}
            path = None
            continue
        if line.startswith("+++ "):
            target = line[4:].strip()
            path = target[2:] if target.startswith("b/") else None
            continue
        hunk_match = _HUNK_HEADER.match(line)
        if hunk_match and path is not None:
            start = int(hunk_match["start"])
            count = int(hunk_match["count"]) if hunk_match["count"] is not None else 1
            end = start + count - 1 if count > 0 else start
            start = max(start, 1)
            touched.setdefault(path, []).append((start, max(end, start)))

    flush()
    return commits


class IssueItem(BaseModel):
    file: str
    start_line: int | None = None
    end_line: int | None = None
    claim: str = ""
    evidence: str = ""
    description: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    suggested_fix: str | None = None


class AnalysisResult(BaseModel):
    issues: list[IssueItem]

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, data):
        # A top-level array arrives wrapped as {"items": [...]}
        if isinstance(data, dict) and "issues" not in data and "items" in data:
            data = {"issues": data["items"]}
        return data


class ConsistencyAnalyzer:
    def __init__(
        self,
        generator: StructuredGenerator,
        cache: CacheStore,
        confidence_threshold: float = 0.7,
        prompt_override: str | None = None,
    ):
        self._generator = generator
        self._cache = cache
        self._confidence_threshold = confidence_threshold
        self._system, self._prompt_version = effective_prompt(
            prompts.SYSTEM_PROMPT, prompts.PROMPT_VERSION, prompt_override
        )

    def cache_key(self, changeset: ChangeSet, hits: list[DocHit]) -> str:
        return fingerprint(
            "analysis",
            self._prompt_version,
            changeset.text,
            [[h.path, h.start_line, h.end_line, h.snippet] for h in hits],
        )

    async def analyze(
        self,
        changeset: ChangeSet,
        hits: list[DocHit],
        recent_commits: list[RecentCommit],
        recent_log: str = "",
    ) -> list[DriftIssue]:
        """Return issues that survive the post-filters.

        Raises:
            GenerationError: If the remote call failed
            ParseError: If the structured output was malformed
        """
        if not hits:
            return []

        async def compute() -> list[dict]:
            result = await self._generator.generate(
                prompts.build_user_prompt(changeset.text, hits, recent_log),
                AnalysisResult,
                system=self._system,
            )
            return [item.model_dump() for item in result.issues]

        raw_items = await self._cache.get_or_compute(self.cache_key(changeset, hits), compute)
        items = [IssueItem.model_validate(item) for item in raw_items]
        return self.filter_issues(items, hits, recent_commits)

    def filter_issues(
        self,
        items: list[IssueItem],
        hits: list[DocHit],
        recent_commits: list[RecentCommit],
    ) -> list[DriftIssue]:
        hits_by_path: dict[str, list[DocHit]] = {}
        for hit in hits:
            hits_by_path.setdefault(hit.path, []).append(hit)

        issues: list[DriftIssue] = []
        seen: set[str] = set()
        for item in items:
            path = item.file.strip().removeprefix("./")
            if path not in hits_by_path:
                logger.debug(f"Dropping issue in {path!r}: not among searched documents")
                continue

            start, end = item.start_line, item.end_line
            if start is None or start < 1:
                start = self._locate(item.claim, hits_by_path[path])
                if start is None:
                    logger.debug(f"Dropping issue in {path}: claim not found in excerpts")
                    continue
                end = start + max(len(item.claim.strip().splitlines()), 1) - 1
            if end is None or end < start:
                end = start

            if any(c.touches(path, start, end) for c in recent_commits):
                logger.debug(f"Dropping issue at {path}:{start}: touched by a recent commit")
                continue

            if item.confidence < self._confidence_threshold:
                logger.debug(
                    f"Dropping issue at {path}:{start}: confidence {item.confidence:.2f} "
                    f"< {self._confidence_threshold:.2f}"
                )
                continue

            issue = DriftIssue.create(
                path=path,
                start_line=start,
                end_line=end,
                claim=item.claim,
                evidence=item.evidence,
                description=item.description,
                confidence=item.confidence,
                suggested_fix=item.suggested_fix or None,
            )
            if issue.id in seen:
                continue
            seen.add(issue.id)
            issues.append(issue)

        logger.debug(f"{len(issues)} of {len(items)} reported issues kept")
        return issues

    @staticmethod
    def _locate(claim: str, hits: list[DocHit]) -> int | None:
        lines = [line for line in claim.strip().splitlines() if line.strip()]
        if not lines:
            return None
        for hit in hits:
            line = hit.line_of(lines[0])
            if line is not None:
                return line
        return None
