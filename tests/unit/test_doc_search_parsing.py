import json

from driftcheck.core.models import DocHit
from driftcheck.services.doc_search import parse_rg_json, rank_and_truncate
from tests.fixtures.fake_providers import rg_json_lines


def _output(messages):
    return "\n".join(json.dumps(m) for m in messages)


def test_parse_groups_contiguous_lines_into_hits():
    lines = [f"line {i}" for i in range(1, 21)]
    output = _output(rg_json_lines("docs/api.md", lines, {3, 15}, context=1))

    hits = parse_rg_json(output, query_index=2, query="foo")

    assert [(h.path, h.start_line, h.end_line) for h in hits] == [
        ("docs/api.md", 2, 4),
        ("docs/api.md", 14, 16),
    ]
    assert hits[0].snippet == "line 2\nline 3\nline 4"
    assert hits[0].query_index == 2
    assert hits[0].query == "foo"


def test_overlapping_context_merges_into_one_hit():
    lines = [f"l{i}" for i in range(1, 11)]
    hits = parse_rg_json(_output(rg_json_lines("README.md", lines, {3, 5}, context=1)))
    assert [(h.start_line, h.end_line) for h in hits] == [(2, 6)]


def test_parse_ignores_noise_and_bytes_payloads():
    output = "\n".join(
        [
            "not json",
            json.dumps({"type": "summary", "data": {}}),
            json.dumps(
                {
                    "type": "match",
                    "data": {"path": {"text": "a.md"}, "lines": {"bytes": "AAE="}, "line_number": 1},
                }
            ),
        ]
    )
    assert parse_rg_json(output) == []


def test_rank_orders_by_query_then_path_then_line_and_dedups():
    hits = [
        DocHit("b.md", 5, 6, "x", query_index=0),
        DocHit("a.md", 9, 9, "y", query_index=1),
        DocHit("a.md", 1, 2, "z", query_index=0),
        DocHit("b.md", 5, 6, "x", query_index=1),
    ]

    ranked = rank_and_truncate(hits, max_tokens=10_000)

    assert [(h.path, h.start_line, h.query_index) for h in ranked] == [
        ("a.md", 1, 0),
        ("b.md", 5, 0),
        ("a.md", 9, 1),
    ]


def test_truncation_drops_lowest_ranked_first():
    hits = [DocHit(f"doc{i}.md", 1, 1, "x" * 40, query_index=i) for i in range(5)]
    per_hit = hits[0].token_estimate

    ranked = rank_and_truncate(hits, max_tokens=per_hit * 3)

    assert [h.path for h in ranked] == ["doc0.md", "doc1.md", "doc2.md"]
    # Deterministic
    assert rank_and_truncate(list(reversed(hits)), per_hit * 3) == ranked
