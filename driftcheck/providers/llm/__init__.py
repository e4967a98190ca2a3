"""LLM providers for driftcheck."""

from driftcheck.core.config.llm_config import LLMConfig
from driftcheck.interfaces.llm_provider import LLMProvider

from .claude_code_cli_provider import ClaudeCodeCLIProvider
from .openai_llm_provider import OpenAILLMProvider


def create_llm_provider(config: LLMConfig) -> LLMProvider:
    """Build the provider named by config.

    Raises:
        ConfigError: If the OpenAI-compatible provider has no API key
    """
    if config.provider == "claude-code-cli":
        return ClaudeCodeCLIProvider(
            model=config.model,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )
    return OpenAILLMProvider(
        api_key=LLMConfig.get_api_key(),
        model=config.model,
        base_url=config.base_url,
        timeout=config.timeout,
        max_retries=config.max_retries,
        temperature=config.temperature,
    )


__all__ = ["ClaudeCodeCLIProvider", "OpenAILLMProvider", "create_llm_provider"]
