"""Config loading: defaults, file, environment and overrides."""

from pathlib import Path

import pytest

from driftcheck.core.config import Config, LLMConfig
from driftcheck.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "DRIFTCHECK_DISABLED",
        "DRIFTCHECK_API_KEY",
        "DRIFTCHECK_API_KEY_FILE",
        "DRIFTCHECK_LLM__PROVIDER",
        "DRIFTCHECK_LLM__BASE_URL",
        "DRIFTCHECK_LLM__MODEL",
        "DRIFTCHECK_LLM__TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path: Path):
    config = Config.load(tmp_path)

    assert config.docs.paths == ("README.md", "docs/**/*.md")
    assert config.docs.max_context_tokens == 8000
    assert config.search.max_queries == 10
    assert config.analysis.confidence_threshold == 0.7
    assert config.tui.max_concurrent_fixes == 3
    assert config.cache.ttl == 3600
    assert config.cache.get_cache_dir(tmp_path) == tmp_path / ".git" / "driftcheck_cache"
    assert config.llm.attempts == 3


def test_missing_file_is_an_error_when_required(tmp_path: Path):
    with pytest.raises(ConfigError):
        Config.load(tmp_path, require_file=True)


def test_file_values_and_env_overrides(tmp_path: Path, monkeypatch):
    (tmp_path / ".driftcheck.toml").write_text(
        """
[general]
allow_push_on_error = true

[docs]
paths = ["docs/**/*.md", "guide.md:docstrings"]
ignore = ["docs/archive/**"]

[llm]
model = "from-file"
base_url = "http://localhost:11434/v1/"
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("DRIFTCHECK_LLM__MODEL", "from-env")

    config = Config.load(tmp_path)

    assert config.docs.paths == ("docs/**/*.md", "guide.md")
    assert config.docs.ignore == ("docs/archive/**",)
    assert config.llm.model == "from-env"
    assert config.llm.base_url == "http://localhost:11434/v1"
    assert config.general.allow_push_on_error


def test_cli_overrides_win(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("DRIFTCHECK_LLM__MODEL", "from-env")
    config = Config.load(tmp_path, overrides={"llm": {"model": "explicit"}})
    assert config.llm.model == "explicit"


@pytest.mark.parametrize(
    "general,expected",
    [
        ({}, True),
        ({"allow_push_on_error": True}, False),
        ({"allow_push_on_error": True, "strict": True}, True),
        ({"strict": False}, False),
    ],
)
def test_strict_mode_derivation(tmp_path: Path, general, expected):
    assert Config.load(tmp_path, overrides={"general": general}).strict is expected


def test_disabled_by_env(tmp_path: Path, monkeypatch):
    config = Config.load(tmp_path)
    assert config.is_enabled()
    monkeypatch.setenv("DRIFTCHECK_DISABLED", "1")
    assert not config.is_enabled()


@pytest.mark.parametrize(
    "content",
    [
        "[docs]\npaths = []\n",
        "[llm]\nprovider = 'bedrock'\n",
        "[unknown]\nx = 1\n",
        "not = [valid toml",
    ],
)
def test_invalid_config_raises_config_error(tmp_path: Path, content):
    (tmp_path / ".driftcheck.toml").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load(tmp_path)


def test_config_is_immutable(tmp_path: Path):
    config = Config.load(tmp_path)
    with pytest.raises(Exception):
        config.general.enabled = False  # type: ignore[misc]


def test_api_key_from_env_and_file(tmp_path: Path, monkeypatch):
    with pytest.raises(ConfigError):
        LLMConfig.get_api_key()

    key_file = tmp_path / "key.txt"
    key_file.write_text("sk-file\n", encoding="utf-8")
    monkeypatch.setenv("DRIFTCHECK_API_KEY_FILE", str(key_file))
    assert LLMConfig.get_api_key() == "sk-file"

    monkeypatch.setenv("DRIFTCHECK_API_KEY", "sk-env")
    assert LLMConfig.get_api_key() == "sk-env"
