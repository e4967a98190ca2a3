from pathlib import Path

import pytest

from driftcheck.core.exceptions import ResolutionError
from driftcheck.services.base_resolver import BaseResolver, parse_range
from tests.fixtures.fake_providers import FakeVCS


def _resolve(tmp_path: Path, fallback_base: str | None = None, **vcs_kwargs) -> str:
    return BaseResolver(FakeVCS(tmp_path, **vcs_kwargs), fallback_base).resolve()


def test_upstream_wins(tmp_path):
    assert (
        _resolve(tmp_path, "develop", upstream="origin/feature", refs={"develop", "origin/main"})
        == "origin/feature"
    )


def test_configured_fallback_before_probes(tmp_path):
    assert _resolve(tmp_path, "develop", refs={"develop", "origin/main"}) == "develop"


def test_missing_fallback_falls_through_to_probes(tmp_path):
    assert _resolve(tmp_path, "nope", refs={"origin/main"}) == "origin/main"


def test_remote_head_probed_first(tmp_path):
    assert (
        _resolve(tmp_path, remote_head="origin/trunk", refs={"origin/trunk", "origin/main"})
        == "origin/trunk"
    )


def test_origin_main_then_origin_master_then_error(tmp_path):
    assert _resolve(tmp_path, refs={"origin/main", "origin/master"}) == "origin/main"
    assert _resolve(tmp_path, refs={"origin/master", "main"}) == "origin/master"
    assert _resolve(tmp_path, refs={"master"}) == "master"

    with pytest.raises(ResolutionError) as excinfo:
        _resolve(tmp_path, refs=set())
    assert excinfo.value.hint


@pytest.mark.parametrize(
    "spec,expected",
    [
        ("origin/main..HEAD", ("origin/main", "HEAD")),
        ("v1.0...feature", ("v1.0", "feature")),
        ("abc123", ("abc123", "HEAD")),
        ("main..", ("main", "HEAD")),
    ],
)
def test_parse_range(spec, expected):
    assert parse_range(spec) == expected
