"""Documentation discovery and search configuration."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocsConfig(BaseModel):
    """Which documentation files are searched and how much of them is sent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: tuple[str, ...] = Field(
        default=("README.md", "docs/**/*.md"),
        description="Include globs (gitwildmatch, relative to the repository root)",
    )
    ignore: tuple[str, ...] = Field(default=(), description="Ignore globs")
    max_context_tokens: int = Field(
        default=8000, ge=1, description="Token budget for documentation hits"
    )

    @field_validator("paths")
    def validate_paths(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # ":docstrings" suffixes from older configs are not supported
        cleaned = tuple(p.removesuffix(":docstrings").strip() for p in v if p.strip())
        if not cleaned:
            raise ValueError("docs.paths must contain at least one glob")
        return cleaned


class SearchConfig(BaseModel):
    """Search-utility (ripgrep) settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    binary: str = Field(default="rg", description="ripgrep executable")
    max_queries: int = Field(default=10, ge=1, le=50)
    max_workers: int = Field(default=4, ge=1, description="Concurrent search processes")
    context_lines: int = Field(default=3, ge=0, le=20)
    timeout: int = Field(default=30, ge=1, description="Per-query timeout in seconds")
