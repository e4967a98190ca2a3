"""Utility helpers for driftcheck."""
