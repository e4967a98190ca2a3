"""QueryPlanner: query normalization, caching and failure mapping."""

import pytest

from driftcheck.core.exceptions import GenerationError
from driftcheck.core.models import ChangeSet, DiffHunk
from driftcheck.services.cache_store import CacheStore, MemoryCacheBackend
from driftcheck.services.generation import StructuredGenerator
from driftcheck.services.query_planner import QueryPlanner, normalize_diff
from tests.fixtures.fake_providers import FakeLLMProvider


def _changeset(text: str = "-def foo(a):\n+def foo(a, b):\n") -> ChangeSet:
    return ChangeSet(
        base="origin/main",
        head="HEAD",
        hunks=(DiffHunk("src/api.py", 1, 1, 1, 1, text),),
    )


def _planner(llm: FakeLLMProvider, max_queries: int = 10, **kwargs) -> QueryPlanner:
    return QueryPlanner(
        StructuredGenerator(llm), CacheStore(MemoryCacheBackend()), max_queries, **kwargs
    )


class TestQueryPlanner:
    @pytest.mark.asyncio
    async def test_plan_dedups_drops_blanks_and_caps(self):
        llm = FakeLLMProvider(
            {
                "QueryPlan": {
                    "queries": [
                        {"pattern": "foo(", "rationale": "signature"},
                        {"pattern": "  "},
                        {"pattern": "foo("},
                        {"pattern": "foo(", "path_glob": "docs/**"},
                        {"pattern": "FOO_TIMEOUT"},
                        {"pattern": "extra"},
                    ]
                }
            }
        )

        queries = await _planner(llm, max_queries=3).plan(_changeset())

        assert [(q.pattern, q.path_glob) for q in queries] == [
            ("foo(", None),
            ("foo(", "docs/**"),
            ("FOO_TIMEOUT", None),
        ]
        assert queries[0].rationale == "signature"

    @pytest.mark.asyncio
    async def test_bare_pattern_list_is_accepted(self):
        llm = FakeLLMProvider({"QueryPlan": {"items": ["foo", "bar"]}})
        queries = await _planner(llm).plan(_changeset())
        assert [q.pattern for q in queries] == ["foo", "bar"]

    @pytest.mark.asyncio
    async def test_repeat_call_within_ttl_makes_no_remote_call(self):
        llm = FakeLLMProvider({"QueryPlan": {"queries": [{"pattern": "foo"}]}})
        planner = _planner(llm)

        first = await planner.plan(_changeset())
        second = await planner.plan(_changeset())

        assert first == second
        assert llm.calls["QueryPlan"] == 1

    def test_fingerprint_ignores_cosmetic_diff_differences(self):
        planner = _planner(FakeLLMProvider())
        plain = _changeset("-def foo(a):\n+def foo(a, b):\n")
        noisy = _changeset("-def foo(a):   \r\n+def foo(a, b):\t\r\n")

        assert planner.cache_key(plain) == planner.cache_key(noisy)
        assert planner.cache_key(plain) != planner.cache_key(_changeset("+other\n"))

    def test_normalize_removes_index_lines(self):
        text = "diff --git a/x b/x\nindex 123..456 100644\n--- a/x\n+++ b/x  \n"
        assert normalize_diff(text) == "diff --git a/x b/x\n--- a/x\n+++ b/x\n"

    def test_prompt_override_changes_version(self):
        default = _planner(FakeLLMProvider())
        custom = _planner(FakeLLMProvider(), prompt_override="Only search for CLI flags.")

        assert custom.prompt_version != default.prompt_version
        assert custom.cache_key(_changeset()) != default.cache_key(_changeset())

    @pytest.mark.asyncio
    async def test_malformed_output_maps_to_generation_error(self):
        llm = FakeLLMProvider({"QueryPlan": {"queries": "not a list"}})
        with pytest.raises(GenerationError):
            await _planner(llm).plan(_changeset())

    @pytest.mark.asyncio
    async def test_timeout_is_flagged(self):
        llm = FakeLLMProvider({"QueryPlan": TimeoutError("too slow")})
        with pytest.raises(GenerationError) as excinfo:
            await _planner(llm).plan(_changeset())
        assert excinfo.value.timed_out

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        llm = FakeLLMProvider({"QueryPlan": RuntimeError("502")})
        planner = _planner(llm)
        with pytest.raises(GenerationError):
            await planner.plan(_changeset())

        llm.responses["QueryPlan"] = {"queries": [{"pattern": "foo"}]}
        assert [q.pattern for q in await planner.plan(_changeset())] == ["foo"]
        assert llm.calls["QueryPlan"] == 2
