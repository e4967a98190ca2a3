"""Cache configuration for driftcheck."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class CacheConfig(BaseModel):
    """Settings for the on-disk generation cache."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = True
    dir: str = Field(
        default=".git/driftcheck_cache",
        description="Cache directory, relative to the repository root",
    )
    ttl: int = Field(default=3600, ge=0, description="Entry lifetime in seconds")

    def get_cache_dir(self, root: Path) -> Path:
        """Return the absolute cache directory for the repository at root."""
        path = Path(self.dir).expanduser()
        return path if path.is_absolute() else root / path

    def __repr__(self) -> str:
        return f"CacheConfig(enabled={self.enabled}, dir={self.dir}, ttl={self.ttl})"
