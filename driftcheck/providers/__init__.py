"""Concrete implementations of the driftcheck interfaces (LLM, search, VCS)."""
