"""Claude Code CLI provider.

Wraps ``claude --print`` so the gate can run on the user's existing Claude
subscription instead of API credits.

Note: The CLI includes Claude Code's agentic system prompt and cannot provide
"raw" API access; our system prompt is appended to it.
"""

import asyncio
import json
import os
import shutil
import subprocess
from typing import Any

from loguru import logger

from driftcheck.interfaces.llm_provider import LLMProvider, LLMResponse
from driftcheck.utils.json_extraction import parse_json_object


class ClaudeCodeCLIProvider(LLMProvider):
    """Claude Code CLI provider using subprocess calls to claude --print."""

    TOKEN_CHARS_RATIO = 4
    BACKOFF_BASE_SECONDS = 0.5

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        timeout: int = 60,
        max_retries: int = 2,
        binary: str = "claude",
    ):
        """Initialize Claude Code CLI provider.

        Args:
            model: Full model name (the CLI rejects short aliases)
            timeout: Request timeout in seconds
            max_retries: Retries after the first failed attempt
            binary: CLI executable name or path
        """
        self._model = model
        self._timeout = timeout
        self._max_retries = max_retries
        self._binary = binary

        self._requests_made = 0
        self._estimated_tokens_used = 0

        if shutil.which(self._binary) is None:
            logger.warning(
                "Claude Code CLI not found. Install from: https://claude.com/claude-code"
            )

    @property
    def name(self) -> str:
        return "claude-code-cli"

    @property
    def model(self) -> str:
        return self._model

    async def _run_cli_command(
        self,
        prompt: str,
        system: str | None = None,
        timeout: int | None = None,
    ) -> str:
        """Run claude CLI command and return output.

        The prompt is sent on stdin so large diffs do not hit argv limits and
        do not show up in the process list.

        Raises:
            TimeoutError: If every attempt timed out
            RuntimeError: If the CLI keeps failing
        """
        cmd = [self._binary, "--print", "--model", self._model, "--output-format", "text"]
        if system:
            cmd.extend(["--append-system-prompt", system])

        # Force subscription auth
        env = os.environ.copy()
        env["CLAUDE_USE_SUBSCRIPTION"] = "true"
        env.pop("ANTHROPIC_API_KEY", None)

        request_timeout = timeout if timeout is not None else self._timeout

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            if attempt > 0:
                await asyncio.sleep(self.BACKOFF_BASE_SECONDS * (2 ** (attempt - 1)))
            process = None
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    env=env,
                )
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(prompt.encode("utf-8")),
                    timeout=request_timeout,
                )
            except asyncio.TimeoutError:
                if process and process.returncode is None:
                    process.kill()
                    await process.wait()
                last_error = TimeoutError(f"CLI command timed out after {request_timeout}s")
                logger.warning(f"CLI attempt {attempt + 1} timed out")
                continue
            except OSError as e:
                last_error = RuntimeError(f"CLI command failed: {e}")
                logger.warning(f"CLI attempt {attempt + 1} failed: {e}")
                continue

            if process.returncode != 0:
                error_msg = stderr.decode("utf-8", errors="replace") if stderr else "Unknown error"
                last_error = RuntimeError(
                    f"CLI command failed (exit {process.returncode}): {error_msg}"
                )
                logger.warning(f"CLI attempt {attempt + 1} failed: {error_msg}")
                continue

            return stdout.decode("utf-8", errors="replace").strip()

        raise last_error or RuntimeError("CLI command failed after retries")

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> LLMResponse:
        content = await self._run_cli_command(prompt, system, timeout)

        # Estimates; the CLI doesn't report token counts
        self._requests_made += 1
        total_tokens = self.estimate_tokens(prompt) + self.estimate_tokens(content)
        if system:
            total_tokens += self.estimate_tokens(system)
        self._estimated_tokens_used += total_tokens

        return LLMResponse(
            content=content,
            tokens_used=total_tokens,
            model=self._model,
            finish_reason="stop",
        )

    async def complete_structured(
        self,
        prompt: str,
        json_schema: dict[str, Any],
        system: str | None = None,
        max_completion_tokens: int = 4096,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """Generate a structured JSON completion.

        The CLI has no native schema support, so the schema is embedded in
        the prompt and the reply is parsed leniently.

        Raises:
            ValueError: If output is not valid JSON or misses required fields
        """
        structured_prompt = f"""Please respond with ONLY valid JSON that conforms to this schema:

{json.dumps(json_schema, indent=2)}

User request: {prompt}

Respond with JSON only, no additional text."""

        response = await self.complete(structured_prompt, system, max_completion_tokens, timeout)
        parsed = parse_json_object(response.content)

        # A bare array reply is left for the schema model to map
        bare_array = list(parsed) == ["items"] and "items" not in json_schema.get("properties", {})
        if "required" in json_schema and not bare_array:
            missing = [field for field in json_schema["required"] if field not in parsed]
            if missing:
                logger.debug(f"Raw output: {response.content}")
                raise ValueError(f"Missing required fields: {missing}")
        return parsed

    def estimate_tokens(self, text: str) -> int:
        return len(text) // self.TOKEN_CHARS_RATIO

    def get_usage_stats(self) -> dict[str, Any]:
        return {
            "requests_made": self._requests_made,
            "total_tokens_estimated": self._estimated_tokens_used,
        }
