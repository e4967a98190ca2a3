"""Version information for driftcheck."""

__version__ = "0.3.0"
