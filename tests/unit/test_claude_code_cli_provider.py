"""ClaudeCodeCLIProvider against a stand-in executable."""

import stat
from pathlib import Path

import pytest

from driftcheck.providers.llm import ClaudeCodeCLIProvider


def _fake_cli(tmp_path: Path, body: str) -> str:
    script = tmp_path / "claude"
    script.write_text(f"#!/bin/sh\n{body}\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return str(script)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(ClaudeCodeCLIProvider, "BACKOFF_BASE_SECONDS", 0)


@pytest.mark.asyncio
async def test_structured_reply_is_parsed_from_fenced_json(tmp_path: Path):
    binary = _fake_cli(
        tmp_path,
        "cat > /dev/null\nprintf '%s\\n' 'Here you go:' '```json' '{\"replacement\": \"fixed\"}' '```'",
    )
    provider = ClaudeCodeCLIProvider(binary=binary, max_retries=0)

    result = await provider.complete_structured(
        "fix it",
        {"title": "FixReplacement", "required": ["replacement"]},
    )

    assert result == {"replacement": "fixed"}
    assert provider.get_usage_stats()["requests_made"] == 1


@pytest.mark.asyncio
async def test_prompt_is_sent_on_stdin(tmp_path: Path):
    binary = _fake_cli(tmp_path, "cat")
    provider = ClaudeCodeCLIProvider(binary=binary, max_retries=0)

    response = await provider.complete("echo this back")

    assert response.content == "echo this back"
    assert response.model == provider.model


@pytest.mark.asyncio
async def test_missing_required_field_is_a_value_error(tmp_path: Path):
    binary = _fake_cli(tmp_path, "cat > /dev/null\necho '{\"other\": 1}'")
    provider = ClaudeCodeCLIProvider(binary=binary, max_retries=0)

    with pytest.raises(ValueError, match="replacement"):
        await provider.complete_structured("x", {"required": ["replacement"]})


@pytest.mark.asyncio
async def test_nonzero_exit_is_retried_then_raised(tmp_path: Path):
    counter = tmp_path / "count"
    binary = _fake_cli(
        tmp_path, f"cat > /dev/null\necho run >> {counter}\necho 'rate limited' >&2\nexit 2"
    )
    provider = ClaudeCodeCLIProvider(binary=binary, max_retries=1)

    with pytest.raises(RuntimeError, match="rate limited"):
        await provider.complete("x")
    assert counter.read_text().count("run") == 2


@pytest.mark.asyncio
async def test_timeout_raises_timeout_error(tmp_path: Path):
    binary = _fake_cli(tmp_path, "sleep 5")
    provider = ClaudeCodeCLIProvider(binary=binary, timeout=1, max_retries=0)

    with pytest.raises(TimeoutError):
        await provider.complete("x")


@pytest.mark.asyncio
async def test_bare_array_reply_skips_required_field_check(tmp_path: Path):
    binary = _fake_cli(tmp_path, "cat > /dev/null\necho '[{\"file\": \"README.md\"}]'")
    provider = ClaudeCodeCLIProvider(binary=binary, max_retries=0)

    result = await provider.complete_structured(
        "x", {"required": ["issues"], "properties": {"issues": {"type": "array"}}}
    )

    assert result == {"items": [{"file": "README.md"}]}
