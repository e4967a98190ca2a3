"""Prompt templates for the generation stages."""

import hashlib


def effective_prompt(default: str, version: str, override: str | None) -> tuple[str, str]:
    """Return (system prompt, prompt version) honoring a configured override.

    An override gets its own version string so cached results produced by the
    built-in prompt are not reused for it.
    """
    if override is None or not override.strip():
        return default, version
    digest = hashlib.sha256(override.encode("utf-8")).hexdigest()[:8]
    return override, f"{version}+custom.{digest}"
