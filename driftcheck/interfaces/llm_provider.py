"""Abstract interface for text-generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Response from a completion call."""

    content: str
    tokens_used: int
    model: str
    finish_reason: str | None = None


class LLMProvider(ABC):
    """Provider capable of plain and JSON-structured completions.

    Implementations own their timeout and retry policy; a failure after the
    retry budget surfaces as ``RuntimeError`` (``TimeoutError`` for timeouts).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        """Generate a completion for the given prompt."""

    @abstractmethod
    async def complete_structured(
        self,
        prompt: str,
        json_schema: dict[str, Any],
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """Generate a JSON object conforming to json_schema."""

    def estimate_tokens(self, text: str) -> int:
        return len(text) // 4

    def get_usage_stats(self) -> dict[str, Any]:
        return {}
