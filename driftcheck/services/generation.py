"""Single capability used by every remote text-generation call.

``StructuredGenerator.generate(prompt, schema)`` returns a validated pydantic
model or raises a typed error. Providers own timeouts and retries; this layer
only maps their failures onto the driftcheck error taxonomy.
"""

from __future__ import annotations

import asyncio
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from driftcheck.core.exceptions import GenerationError, ParseError
from driftcheck.interfaces.llm_provider import LLMProvider

ModelT = TypeVar("ModelT", bound=BaseModel)


class StructuredGenerator:
    def __init__(self, provider: LLMProvider, max_completion_tokens: int = 4096):
        self._provider = provider
        self._max_completion_tokens = max_completion_tokens

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def generate(
        self,
        prompt: str,
        schema: type[ModelT],
        system: str | None = None,
    ) -> ModelT:
        """Run one structured completion and validate it against schema.

        Raises:
            GenerationError: If the provider failed or timed out
            ParseError: If the output does not match schema
        """
        try:
            raw = await self._provider.complete_structured(
                prompt,
                schema.model_json_schema(),
                system=system,
                max_completion_tokens=self._max_completion_tokens,
            )
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise GenerationError(str(e) or "LLM request timed out", timed_out=True) from e
        except ValueError as e:
            raise ParseError(f"Malformed model output: {e}") from e
        except Exception as e:
            raise GenerationError(f"LLM call failed: {e}") from e

        try:
            return schema.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Output failed {schema.__name__} validation: {raw!r}")
            raise ParseError(
                f"Model output does not match {schema.__name__}: "
                f"{e.error_count()} validation error(s)"
            ) from e
