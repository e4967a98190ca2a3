"""Turns a ChangeSet into ranked documentation search queries."""

from __future__ import annotations

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from driftcheck.core.exceptions import GenerationError, ParseError
from driftcheck.core.models import ChangeSet, SearchQuery
from driftcheck.services.cache_store import CacheStore, fingerprint
from driftcheck.services.generation import StructuredGenerator
from driftcheck.services.prompts import effective_prompt
from driftcheck.services.prompts import search_queries as prompts


class QueryItem(BaseModel):
    pattern: str
    path_glob: str | None = None
    rationale: str = ""


class QueryPlan(BaseModel):
    queries: list[QueryItem] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_patterns(cls, data):
        # Models sometimes answer with a plain list of strings
        if isinstance(data, dict) and "queries" not in data and "items" in data:
            data = {"queries": data["items"]}
        if isinstance(data, dict) and isinstance(data.get("queries"), list):
            data = {
                **data,
                "queries": [
                    {"pattern": q} if isinstance(q, str) else q for q in data["queries"]
                ],
            }
        return data


def normalize_diff(text: str) -> str:
    """Canonical diff text for fingerprinting.

    CRLF becomes LF, trailing whitespace is stripped and ``index`` header lines
    (blob hashes) are removed, so cosmetically different diffs share a key.
    """
    lines = []
    for line in text.replace("\r\n", "\n").split("\n"):
        if line.startswith("index "):
            continue
        lines.append(line.rstrip())
    return "\n".join(lines)


class QueryPlanner:
    def __init__(
        self,
        generator: StructuredGenerator,
        cache: CacheStore,
        max_queries: int = 10,
        prompt_override: str | None = None,
    ):
        self._generator = generator
        self._cache = cache
        self._max_queries = max_queries
        self._system, self._prompt_version = effective_prompt(
            prompts.SYSTEM_PROMPT, prompts.PROMPT_VERSION, prompt_override
        )

    @property
    def prompt_version(self) -> str:
        return self._prompt_version

    def cache_key(self, changeset: ChangeSet) -> str:
        return fingerprint("queries", self._prompt_version, normalize_diff(changeset.text))

    async def plan(self, changeset: ChangeSet) -> list[SearchQuery]:
        """Return up to max_queries deduplicated queries, best first.

        Raises:
            GenerationError: If the remote call failed or returned unusable output
        """

        async def compute() -> list[dict]:
            try:
                plan = await self._generator.generate(
                    prompts.build_user_prompt(changeset.text, changeset.truncated),
                    QueryPlan,
                    system=self._system.replace("{max_queries}", str(self._max_queries)),
                )
            except ParseError as e:
                raise GenerationError(f"Query planning returned malformed output: {e}") from e
            return [item.model_dump() for item in plan.queries]

        payload = await self._cache.get_or_compute(self.cache_key(changeset), compute)

        queries: list[SearchQuery] = []
        seen: set[tuple[str, str | None]] = set()
        for item in payload:
            pattern = str(item.get("pattern", "")).strip()
            if not pattern:
                continue
            path_glob = item.get("path_glob") or None
            if (pattern, path_glob) in seen:
                continue
            seen.add((pattern, path_glob))
            queries.append(
                SearchQuery(pattern=pattern, path_glob=path_glob, rationale=item.get("rationale", ""))
            )
            if len(queries) >= self._max_queries:
                break

        logger.debug(f"Planned {len(queries)} search queries")
        return queries
