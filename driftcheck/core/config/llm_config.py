"""Text-generation provider configuration for driftcheck.

Configuration can be provided via:
- Configuration file ([llm] table of .driftcheck.toml)
- Environment variables (DRIFTCHECK_LLM__*, DRIFTCHECK_API_KEY[_FILE])
- Default values
"""

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from driftcheck.core.exceptions import ConfigError

LLMProviderName = Literal["openai", "claude-code-cli"]


class LLMConfig(BaseModel):
    """Settings for the remote text-generation service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: LLMProviderName = Field(
        default="openai", description="Provider used for every generation call"
    )
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible chat completions API",
    )
    model: str = Field(default="gpt-4o", description="Model name")
    timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")
    max_retries: int = Field(
        default=2, ge=0, description="Retries after the first failed attempt"
    )
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)

    @field_validator("base_url")
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop trailing slashes."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base_url: {v}. Must start with http:// or https://")
        return v.rstrip("/")

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load LLM config overrides from environment variables."""
        config: dict[str, Any] = {}
        if provider := os.getenv("DRIFTCHECK_LLM__PROVIDER"):
            config["provider"] = provider
        if base_url := os.getenv("DRIFTCHECK_LLM__BASE_URL"):
            config["base_url"] = base_url
        if model := os.getenv("DRIFTCHECK_LLM__MODEL"):
            config["model"] = model
        if timeout := os.getenv("DRIFTCHECK_LLM__TIMEOUT"):
            config["timeout"] = timeout
        return config

    @staticmethod
    def get_api_key() -> str:
        """Resolve the API key.

        Checks in order:
        1. DRIFTCHECK_API_KEY env var
        2. DRIFTCHECK_API_KEY_FILE env var (reads key from file path)

        Raises:
            ConfigError: If no key is available
        """
        if key := os.getenv("DRIFTCHECK_API_KEY"):
            return key
        if key_file := os.getenv("DRIFTCHECK_API_KEY_FILE"):
            try:
                return Path(key_file).expanduser().read_text(encoding="utf-8").strip()
            except OSError as e:
                raise ConfigError(
                    f"Could not read API key file {key_file}: {e}",
                    hint="Check DRIFTCHECK_API_KEY_FILE points at a readable file.",
                ) from e
        raise ConfigError(
            "API key not found",
            hint="Set the DRIFTCHECK_API_KEY environment variable.",
        )

    def __repr__(self) -> str:
        return f"LLMConfig(provider={self.provider}, model={self.model}, base_url={self.base_url})"
