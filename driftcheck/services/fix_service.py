"""Fix generation and region-scoped documentation writes.

``FixGenerator`` asks the model for a replacement of the flagged lines only.
``DocFileWriter`` splices that replacement into the file under a per-path
lock. The read-modify-write itself is synchronous, so a cancelled fix task can
never leave a partially written file behind.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from driftcheck.core.exceptions import ApplyError
from driftcheck.core.models import DriftIssue
from driftcheck.services.cache_store import CacheStore, fingerprint
from driftcheck.services.generation import StructuredGenerator
from driftcheck.services.prompts import effective_prompt
from driftcheck.services.prompts import fix as prompts

CONTEXT_LINES = 5


class FixReplacement(BaseModel):
    replacement: str


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _read_raw(path: Path) -> str:
    # newline="" keeps CRLF endings intact
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


class DocFileWriter:
    """Applies region replacements to documentation files under the repository root."""

    def __init__(self, root: Path):
        self._root = root.resolve()
        self._locks: dict[Path, asyncio.Lock] = {}
        self._aborted = False

    def abort(self) -> None:
        """Refuse all further writes."""
        self._aborted = True

    def resolve(self, rel_path: str) -> Path:
        """Resolve rel_path inside the root.

        Raises:
            ApplyError: If the path escapes the repository root
        """
        path = (self._root / rel_path).resolve()
        if not path.is_relative_to(self._root):
            raise ApplyError(rel_path, "path is outside the repository root")
        return path

    def read_lines(self, rel_path: str) -> list[str]:
        path = self.resolve(rel_path)
        try:
            return _read_raw(path).splitlines(keepends=True)
        except OSError as e:
            raise ApplyError(rel_path, str(e)) from e

    def read_region(
        self, issue: DriftIssue, context: int = CONTEXT_LINES
    ) -> tuple[str, str, str]:
        """Return (before, region, after) text for the issue's recorded lines."""
        lines = self.read_lines(issue.path)
        if issue.start_line > len(lines):
            raise ApplyError(issue.path, f"line {issue.start_line} is past end of file")
        start = issue.start_line - 1
        end = min(issue.end_line, len(lines))
        before = lines[max(0, start - context) : start]
        after = lines[end : end + context]
        return (
            "\n".join(_strip_eol(l) for l in before),
            "\n".join(_strip_eol(l) for l in lines[start:end]),
            "\n".join(_strip_eol(l) for l in after),
        )

    async def apply(self, issue: DriftIssue, region: str, replacement: str) -> None:
        """Replace region (as read before generation) with replacement.

        Raises:
            ApplyError: If the region can no longer be found or the write failed
        """
        path = self.resolve(issue.path)
        lock = self._locks.setdefault(path, asyncio.Lock())
        async with lock:
            # No awaits from here on: the write is all-or-nothing
            if self._aborted:
                raise ApplyError(issue.path, "aborted")
            self._write(issue, path, region, replacement)

    def _write(self, issue: DriftIssue, path: Path, region: str, replacement: str) -> None:
        try:
            content = _read_raw(path)
        except OSError as e:
            raise ApplyError(issue.path, str(e)) from e

        lines = content.splitlines(keepends=True)
        region_lines = region.split("\n")
        start = self._locate(lines, region_lines, issue.start_line - 1)
        if start is None:
            raise ApplyError(issue.path, "flagged text changed since analysis")
        end = start + len(region_lines)

        newline = "\r\n" if lines and lines[0].endswith("\r\n") else "\n"
        text = replacement.rstrip("\r\n")
        # An empty replacement deletes the region
        new_lines = [f"{line}{newline}" for line in text.split("\n")] if text else []
        if new_lines and end == len(lines) and not lines[-1].endswith("\n"):
            new_lines[-1] = new_lines[-1].rstrip("\r\n")
        updated = "".join(lines[:start] + new_lines + lines[end:])

        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
                fh.write(updated)
            shutil.copymode(path, tmp)
            os.replace(tmp, path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise ApplyError(issue.path, str(e)) from e
        logger.debug(f"Applied fix to {issue.location}")

    @staticmethod
    def _locate(lines: list[str], region_lines: list[str], hint: int) -> int | None:
        """Find region at hint, else its unique exact occurrence."""
        stripped = [_strip_eol(l) for l in lines]
        size = len(region_lines)
        if stripped[hint : hint + size] == region_lines:
            return hint
        matches = [
            i for i in range(len(stripped) - size + 1) if stripped[i : i + size] == region_lines
        ]
        return matches[0] if len(matches) == 1 else None


class FixGenerator:
    def __init__(
        self,
        generator: StructuredGenerator,
        cache: CacheStore,
        prompt_override: str | None = None,
    ):
        self._generator = generator
        self._cache = cache
        self._system, self._prompt_version = effective_prompt(
            prompts.SYSTEM_PROMPT, prompts.PROMPT_VERSION, prompt_override
        )

    async def generate(self, issue: DriftIssue, before: str, region: str, after: str) -> str:
        """Return replacement text for region.

        Raises:
            GenerationError, ParseError: If the remote call failed
        """
        key = fingerprint(
            "fix", self._prompt_version, issue.path, region, issue.claim, issue.evidence
        )

        async def compute() -> str:
            result = await self._generator.generate(
                prompts.build_user_prompt(issue, region, before, after),
                FixReplacement,
                system=self._system,
            )
            return result.replacement

        return await self._cache.get_or_compute(key, compute)


class DocFixer:
    """Generates and applies the fix for one issue."""

    def __init__(self, generator: FixGenerator, writer: DocFileWriter):
        self._generator = generator
        self._writer = writer

    @property
    def writer(self) -> DocFileWriter:
        return self._writer

    def abort(self) -> None:
        self._writer.abort()

    async def apply(self, issue: DriftIssue) -> None:
        before, region, after = self._writer.read_region(issue)
        replacement = await self._generator.generate(issue, before, region, after)
        await self._writer.apply(issue, region, replacement)
