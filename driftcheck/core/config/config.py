"""Root configuration for driftcheck.

The configuration is loaded once per run into an immutable ``Config`` value
and passed explicitly to every component. Sources, lowest precedence first:

- Default values
- ``.driftcheck.toml`` at the repository root
- Environment variables (DRIFTCHECK_*)
- Explicit overrides passed by the CLI
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from driftcheck.core.config.cache_config import CacheConfig
from driftcheck.core.config.docs_config import DocsConfig, SearchConfig
from driftcheck.core.config.llm_config import LLMConfig
from driftcheck.core.exceptions import ConfigError

CONFIG_FILENAME = ".driftcheck.toml"


class GeneralConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    allow_push_on_error: bool = False
    # None means "strict unless pushes are allowed on error"
    strict: bool | None = None
    fallback_base: str | None = None


class DiffConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_tokens: int = Field(default=12000, ge=1, description="Token budget for the change set")


class AnalysisConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    recent_commits: int = Field(
        default=10, ge=0, description="Commits inspected for already-fixed docs"
    )


class PromptsConfig(BaseModel):
    """Optional overrides for the built-in prompts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    analysis: str | None = None
    search_queries: str | None = None
    fix: str | None = None


class TuiConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    theme: Literal["default", "minimal", "colorful"] = "default"
    auto_apply: bool = False
    max_concurrent_fixes: int = Field(default=3, ge=1, le=16)
    tick_ms: int = Field(default=80, ge=10, le=1000)


class Config(BaseModel):
    """Complete, immutable driftcheck configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    docs: DocsConfig = Field(default_factory=DocsConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
    tui: TuiConfig = Field(default_factory=TuiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @property
    def strict(self) -> bool:
        """Whether recoverable stage failures abort the run."""
        if self.general.strict is not None:
            return self.general.strict
        return not self.general.allow_push_on_error

    def is_enabled(self) -> bool:
        """Check if driftcheck is enabled (config + DRIFTCHECK_DISABLED env var)."""
        if os.getenv("DRIFTCHECK_DISABLED") == "1":
            return False
        return self.general.enabled

    @staticmethod
    def is_debug() -> bool:
        return os.getenv("DRIFTCHECK_DEBUG") == "1"

    @staticmethod
    def find_config_path(root: Path) -> Path | None:
        path = root / CONFIG_FILENAME
        return path if path.is_file() else None

    @classmethod
    def load(
        cls,
        root: Path,
        overrides: dict[str, Any] | None = None,
        require_file: bool = False,
    ) -> Config:
        """Load configuration for the repository at root.

        Raises:
            ConfigError: If the file is missing (when required), unreadable or invalid
        """
        data: dict[str, Any] = {}
        path = cls.find_config_path(root)
        if path is None:
            if require_file:
                raise ConfigError(
                    "Configuration file not found",
                    hint="Run 'driftcheck install-hook' and create .driftcheck.toml.",
                )
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigError(
                    f"Failed to read {path}: {e}",
                    hint=f"Fix the syntax of {CONFIG_FILENAME}.",
                ) from e

        env_llm = LLMConfig.load_from_env()
        if env_llm:
            data.setdefault("llm", {}).update(env_llm)

        for section, values in (overrides or {}).items():
            data.setdefault(section, {}).update(values)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid configuration: {e}",
                hint=f"Check the values in {CONFIG_FILENAME}.",
            ) from e
