"""Core types, configuration and errors for driftcheck."""
