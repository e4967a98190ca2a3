"""Abstract interfaces for driftcheck collaborators."""

from .llm_provider import LLMProvider, LLMResponse
from .search_provider import SearchProvider
from .vcs_provider import VCSProvider

__all__ = ["LLMProvider", "LLMResponse", "SearchProvider", "VCSProvider"]
