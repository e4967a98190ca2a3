"""Abstract interface for version-control queries.

The pipeline only consumes the textual output of these calls; parsing lives
in the services that use them.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class VCSProvider(ABC):
    @property
    @abstractmethod
    def root(self) -> Path:
        """Repository working tree root."""

    @abstractmethod
    def upstream(self) -> str | None:
        """Upstream tracking ref of the current branch, or None."""

    @abstractmethod
    def ref_exists(self, ref: str) -> bool:
        """Whether ref resolves to a commit."""

    @abstractmethod
    def remote_head(self, remote: str = "origin") -> str | None:
        """Target of ``refs/remotes/<remote>/HEAD`` (e.g. ``origin/main``), or None."""

    @abstractmethod
    def diff(self, base: str, head: str) -> str:
        """Unified diff text between base and head."""

    @abstractmethod
    def recent_log(self, count: int) -> str:
        """Patch log of the last count commits with zero context lines.

        Each commit starts with a ``commit <sha> <subject>`` line followed by
        its ``--unified=0`` patch.
        """
