"""Interactive review UI."""

from .app import ReviewApp, make_review_runner
from .theme import Theme

__all__ = ["ReviewApp", "Theme", "make_review_runner"]
