"""Error taxonomy for driftcheck.

Every error raised by the pipeline derives from ``DriftcheckError``. Errors
that abort a run before any remote call (``ResolutionError``,
``ConfigError``, ``VCSError``) carry a ``hint`` telling the user how to
recover. ``GenerationError``, ``SearchError`` and ``ParseError`` are
recoverable: the affected stage degrades unless strict mode is active.
"""

from __future__ import annotations

from pathlib import Path


class DriftcheckError(Exception):
    """Base class for all driftcheck errors."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        return self.message


class ConfigError(DriftcheckError):
    """Invalid or missing configuration."""


class ResolutionError(DriftcheckError):
    """No usable base reference could be found for the diff."""

    def __init__(self, message: str = "Could not determine a base reference") -> None:
        super().__init__(
            message,
            hint=(
                "Push with an upstream ('git push -u origin <branch>'), set "
                "general.fallback_base in .driftcheck.toml, or pass --range."
            ),
        )


class VCSError(DriftcheckError):
    """A version-control query failed."""


class EmptyChangeError(DriftcheckError):
    """The diff has no hunks; there is nothing to check."""

    def __init__(self, message: str = "No changes to check") -> None:
        super().__init__(message)


class GenerationError(DriftcheckError):
    """A text-generation call failed after its retry budget."""

    def __init__(self, message: str, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class SearchError(DriftcheckError):
    """Every documentation search query failed."""


class ParseError(DriftcheckError):
    """Structured model output did not match the expected shape."""


class ApplyError(DriftcheckError):
    """A documentation fix could not be written."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Failed to apply fix to {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class RemediationStateError(DriftcheckError):
    """An operation was attempted from a state that does not allow it."""


__all__ = [
    "ApplyError",
    "ConfigError",
    "DriftcheckError",
    "EmptyChangeError",
    "GenerationError",
    "ParseError",
    "RemediationStateError",
    "ResolutionError",
    "SearchError",
    "VCSError",
]
