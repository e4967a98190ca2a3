"""Fan-out documentation search over the search utility.

Each query runs as an independent task on a bounded worker pool. Results are
merged, deduplicated by ``(path, start_line, end_line)``, ranked by query order
then path then start line, and truncated to a token budget from the tail.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from loguru import logger

from driftcheck.core.exceptions import SearchError
from driftcheck.core.models import DocHit, SearchQuery
from driftcheck.interfaces.search_provider import SearchProvider
from driftcheck.utils.doc_paths import DocPathMatcher, filter_by_glob


def parse_rg_json(output: str, query_index: int = 0, query: str = "") -> list[DocHit]:
    """Group ripgrep ``--json`` match/context lines into contiguous hits.

    Only ``match`` and ``context`` messages are used; ``begin``/``end``/
    ``summary`` messages and undecodable lines are ignored.
    """
    lines_by_path: dict[str, dict[int, str]] = {}
    for raw in output.splitlines():
        raw = raw.strip()
        if not raw:
            continue
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if message.get("type") not in ("match", "context"):
            continue
        data = message.get("data", {})
        path = data.get("path", {}).get("text")
        line_number = data.get("line_number")
        text = data.get("lines", {}).get("text")
        if path is None or line_number is None or text is None:
            # Non-UTF-8 content is reported as "bytes"; skip it
            continue
        lines_by_path.setdefault(path, {})[int(line_number)] = text.rstrip("\r\n")

    hits: list[DocHit] = []
    for path, lines in lines_by_path.items():
        numbers = sorted(lines)
        block: list[int] = []
        for number in numbers:
            if block and number != block[-1] + 1:
                hits.append(_make_hit(path, block, lines, query_index, query))
                block = []
            block.append(number)
        if block:
            hits.append(_make_hit(path, block, lines, query_index, query))
    return hits


def _make_hit(
    path: str, block: list[int], lines: dict[int, str], query_index: int, query: str
) -> DocHit:
    if path.startswith("./"):
        path = path[2:]
    return DocHit(
        path=path,
        start_line=block[0],
        end_line=block[-1],
        snippet="\n".join(lines[n] for n in block),
        query_index=query_index,
        query=query,
    )


def rank_and_truncate(hits: list[DocHit], max_tokens: int) -> list[DocHit]:
    """Deduplicate, rank and cut hits to max_tokens.

    The first occurrence of a ``(path, start, end)`` key wins; since hits are
    ranked before dedup the surviving copy is always the highest-ranked one.
    """
    ranked = sorted(hits, key=lambda h: (h.query_index, h.path, h.start_line))
    unique: list[DocHit] = []
    seen: set[tuple[str, int, int]] = set()
    for hit in ranked:
        if hit.key in seen:
            continue
        seen.add(hit.key)
        unique.append(hit)

    total = sum(h.token_estimate for h in unique)
    while unique and total > max_tokens:
        dropped = unique.pop()
        total -= dropped.token_estimate
    return unique


class DocSearchAggregator:
    def __init__(
        self,
        root: Path,
        search_provider: SearchProvider,
        max_workers: int = 4,
        context_lines: int = 3,
    ):
        self._root = root
        self._search_provider = search_provider
        self._max_workers = max_workers
        self._context_lines = context_lines

    def doc_files(self, include: list[str] | tuple[str, ...], ignore: list[str] | tuple[str, ...]) -> list[Path]:
        return DocPathMatcher(self._root, include, ignore).expand()

    async def search(
        self,
        queries: list[SearchQuery],
        include: list[str] | tuple[str, ...],
        ignore: list[str] | tuple[str, ...],
        max_tokens: int,
    ) -> list[DocHit]:
        """Run every query against the documentation set.

        Raises:
            SearchError: If every query failed
        """
        if not queries:
            return []

        files = self.doc_files(include, ignore)
        if not files:
            logger.warning("No documentation files match docs.paths")
            return []
        logger.debug(f"Searching {len(files)} documentation files with {len(queries)} queries")

        semaphore = asyncio.Semaphore(self._max_workers)

        async def run_query(index: int, query: SearchQuery) -> list[DocHit]:
            targets = filter_by_glob(files, query.path_glob)
            if not targets:
                return []
            async with semaphore:
                output = await self._search_provider.search(
                    query.pattern, targets, self._context_lines
                )
            return parse_rg_json(output, query_index=index, query=query.pattern)

        results = await asyncio.gather(
            *(run_query(i, q) for i, q in enumerate(queries)),
            return_exceptions=True,
        )

        hits: list[DocHit] = []
        failures = 0
        for query, result in zip(queries, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                failures += 1
                logger.warning(f"Search for {query.pattern!r} failed: {result}")
                continue
            hits.extend(result)

        if failures == len(queries):
            raise SearchError(f"All {failures} documentation searches failed")

        ranked = rank_and_truncate(hits, max_tokens)
        if len(ranked) < len({h.key for h in hits}):
            logger.debug(f"Dropped {len({h.key for h in hits}) - len(ranked)} hits over token budget")
        return ranked
