"""OpenAI-compatible chat completions provider.

Talks to any endpoint implementing ``POST {base_url}/chat/completions``
(OpenAI, Azure-style gateways, Ollama, vLLM, LiteLLM proxies).
"""

import asyncio
import json
from typing import Any

import httpx
from loguru import logger

from driftcheck.interfaces.llm_provider import LLMProvider, LLMResponse
from driftcheck.utils.json_extraction import parse_json_object


class OpenAILLMProvider(LLMProvider):
    """Provider using the OpenAI chat completions wire format over httpx."""

    # Delay before the first retry; doubles on every further attempt
    BACKOFF_BASE_SECONDS = 0.5

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str = "https://api.openai.com/v1",
        timeout: int = 30,
        max_retries: int = 2,
        temperature: float = 0.1,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Bearer token for the endpoint
            model: Model name to request
            base_url: API base URL (``/chat/completions`` is appended)
            timeout: Request timeout in seconds
            max_retries: Retries after the first failed attempt
            temperature: Sampling temperature
            http_client: Optional pre-built client (tests inject a MockTransport)
        """
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._temperature = temperature
        self._client = http_client

        self._requests_made = 0
        self._tokens_used = 0
        self._prompt_tokens = 0
        self._completion_tokens = 0

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def _post_chat(self, payload: dict[str, Any], timeout: int) -> dict[str, Any]:
        url = f"{self._base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(url, json=payload, headers=headers)

        if response.status_code >= 400:
            raise RuntimeError(f"HTTP {response.status_code}: {response.text[:500]}")
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Invalid JSON from chat endpoint: {e}") from e

    async def _chat(
        self,
        prompt: str,
        system: str | None,
        max_completion_tokens: int,
        timeout: int | None,
    ) -> LLMResponse:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": max_completion_tokens,
        }
        request_timeout = timeout if timeout is not None else self._timeout

        logger.debug(f"LLM request to {self._base_url} model={self._model} ({len(prompt)} chars)")

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            if attempt > 0:
                delay = self.BACKOFF_BASE_SECONDS * (2 ** (attempt - 1))
                logger.debug(f"Retrying LLM request after {delay:.1f}s")
                await asyncio.sleep(delay)
            try:
                data = await self._post_chat(payload, request_timeout)
            except httpx.TimeoutException as e:
                last_error = TimeoutError(f"LLM request timed out after {request_timeout}s")
                logger.warning(f"LLM request attempt {attempt + 1} timed out: {e}")
                continue
            except (httpx.HTTPError, RuntimeError) as e:
                last_error = RuntimeError(f"LLM request failed: {e}")
                logger.warning(f"LLM request attempt {attempt + 1} failed: {e}")
                continue

            choices = data.get("choices") or []
            if not choices:
                last_error = RuntimeError("LLM response contained no choices")
                logger.warning(f"LLM request attempt {attempt + 1}: no choices")
                continue

            content = (choices[0].get("message") or {}).get("content") or ""
            usage = data.get("usage") or {}
            prompt_tokens = int(usage.get("prompt_tokens") or self.estimate_tokens(prompt))
            completion_tokens = int(
                usage.get("completion_tokens") or self.estimate_tokens(content)
            )
            self._requests_made += 1
            self._prompt_tokens += prompt_tokens
            self._completion_tokens += completion_tokens
            self._tokens_used += prompt_tokens + completion_tokens

            logger.debug(f"LLM response: {content[:500]}")
            return LLMResponse(
                content=content,
                tokens_used=prompt_tokens + completion_tokens,
                model=data.get("model", self._model),
                finish_reason=choices[0].get("finish_reason"),
            )

        raise last_error or RuntimeError("LLM request failed after retries")

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        return await self._chat(prompt, system, max_completion_tokens, timeout)

    async def complete_structured(
        self,
        prompt: str,
        json_schema: dict[str, Any],
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """Generate a JSON object conforming to the given schema.

        The schema is embedded in the prompt rather than sent as
        ``response_format`` so that endpoints without structured output
        support still work.

        Raises:
            ValueError: If the output is not a JSON object
        """
        structured_prompt = f"""{prompt}

Respond with ONLY valid JSON that conforms to this schema:

{json.dumps(json_schema, indent=2)}"""

        response = await self._chat(structured_prompt, system, max_completion_tokens, timeout)
        try:
            return parse_json_object(response.content)
        except ValueError as e:
            logger.debug(f"Raw output: {response.content}")
            raise ValueError(f"Invalid JSON in structured output: {e}") from e

    def get_usage_stats(self) -> dict[str, Any]:
        return {
            "requests_made": self._requests_made,
            "total_tokens": self._tokens_used,
            "prompt_tokens": self._prompt_tokens,
            "completion_tokens": self._completion_tokens,
        }
