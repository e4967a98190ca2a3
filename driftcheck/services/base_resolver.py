"""Base reference resolution for the pushed change."""

from __future__ import annotations

from loguru import logger

from driftcheck.core.exceptions import ResolutionError
from driftcheck.interfaces.vcs_provider import VCSProvider

PROBE_CANDIDATES = ("origin/main", "origin/master", "main", "master")


def parse_range(spec: str) -> tuple[str, str]:
    """Split an explicit range into (base, head).

    Accepts ``base..head``, ``base...head`` or a bare ``base`` (head = HEAD).
    """
    spec = spec.strip()
    for sep in ("...", ".."):
        if sep in spec:
            base, head = spec.split(sep, 1)
            return base.strip() or "HEAD", head.strip() or "HEAD"
    if not spec:
        raise ResolutionError("Empty range")
    return spec, "HEAD"


class BaseResolver:
    def __init__(self, vcs: VCSProvider, fallback_base: str | None = None):
        self._vcs = vcs
        self._fallback_base = fallback_base

    def candidates(self) -> list[str]:
        """Probe list after upstream and fallback_base, in preference order."""
        probes: list[str] = []
        remote_head = self._vcs.remote_head("origin")
        if remote_head:
            probes.append(remote_head)
        for candidate in PROBE_CANDIDATES:
            if candidate not in probes:
                probes.append(candidate)
        return probes

    def resolve(self) -> str:
        """Return the ref representing the pre-change state.

        Raises:
            ResolutionError: If no upstream, fallback or probe candidate exists
        """
        upstream = self._vcs.upstream()
        if upstream:
            logger.debug(f"Using upstream {upstream} as base")
            return upstream

        if self._fallback_base:
            if self._vcs.ref_exists(self._fallback_base):
                logger.debug(f"Using configured fallback_base {self._fallback_base}")
                return self._fallback_base
            logger.warning(f"Configured fallback_base {self._fallback_base!r} does not exist")

        for candidate in self.candidates():
            if self._vcs.ref_exists(candidate):
                logger.debug(f"Using {candidate} as base")
                return candidate

        raise ResolutionError()
