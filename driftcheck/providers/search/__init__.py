"""Search-utility providers."""

from .ripgrep_provider import RipgrepProvider

__all__ = ["RipgrepProvider"]
