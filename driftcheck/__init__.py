"""driftcheck - documentation drift detection for Git pushes."""

from driftcheck.version import __version__

__all__ = ["__version__"]
