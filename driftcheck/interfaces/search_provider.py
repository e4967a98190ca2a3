"""Abstract interface for the full-text search utility."""

from abc import ABC, abstractmethod
from pathlib import Path


class SearchProvider(ABC):
    @abstractmethod
    async def search(
        self, pattern: str, files: list[Path], context_lines: int
    ) -> str:
        """Run a fixed-string search over files.

        Returns:
            ripgrep ``--json`` output (one JSON message per line); empty when
            nothing matched

        Raises:
            RuntimeError: If the search utility failed
        """
