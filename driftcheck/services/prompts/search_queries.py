"""Prompt for turning a code diff into documentation search patterns."""

PROMPT_VERSION = "queries-v2"

SYSTEM_PROMPT = """Given a code diff, propose search patterns that find documentation describing the changed behavior.

Focus on: function names, class names, API endpoints, CLI flags, config keys, environment variables, error messages.

Rules:
- Each pattern is a literal string searched case-sensitively; no regular expressions.
- Prefer identifiers that appear verbatim in the OLD code (docs describe the old behavior).
- Order patterns from most to least likely to find affected documentation.
- Optionally restrict a pattern to a path glob (e.g. "docs/**/*.md").
- Return at most {max_queries} patterns."""


def build_user_prompt(diff_text: str, truncated: bool) -> str:
    note = (
        "\n(Note: the diff was truncated to fit the budget; some files are omitted.)\n"
        if truncated
        else ""
    )
    return f"## Code Diff\n```diff\n{diff_text}\n```{note}"
