"""Consistency analysis prompt.

The model is asked for hard factual contradictions only. Everything else
(style, missing docs, vague wording) is out of bounds: false positives waste
developer time and erode trust in the gate.
"""

from driftcheck.core.models import DocHit

PROMPT_VERSION = "analysis-v3"

SYSTEM_PROMPT = """You are a strict documentation consistency reviewer. Your job is to find ONLY clear, obvious documentation errors caused by code changes.

ONLY report an issue if:
1. Documentation explicitly states something that is NOW FACTUALLY WRONG due to the code change
2. A code example in the docs would NOW FAIL or produce different results
3. A function signature, parameter, or return type documented is NOW DIFFERENT in the code

DO NOT report:
- Stylistic improvements or suggestions
- Missing documentation
- Documentation that is vague but not technically wrong
- Potential improvements or clarifications
- Anything where the docs are still technically accurate
- Issues that appear to have been ALREADY FIXED in recent commits (check the commit log provided)

Be conservative. When in doubt, leave it out. False positives waste developer time.

For every issue give:
- "file": the documentation file path exactly as shown in the excerpt header
- "start_line" / "end_line": the line numbers of the wrong text (use the numbers shown in the excerpt)
- "claim": the exact documentation text that is wrong
- "evidence": the code from the diff that contradicts it
- "description": what is factually wrong
- "confidence": 0.0-1.0, how certain you are this is a hard contradiction
- "suggested_fix": minimal corrected text (optional)

If there are no clear issues, return {"issues": []}."""


def format_hits(hits: list[DocHit]) -> str:
    """Render hits as numbered excerpts so the model can cite exact lines."""
    blocks = []
    for hit in hits:
        numbered = "\n".join(
            f"{hit.start_line + offset:>5} | {line}"
            for offset, line in enumerate(hit.snippet.splitlines())
        )
        blocks.append(f"--- {hit.path} (lines {hit.start_line}-{hit.end_line}) ---\n{numbered}")
    return "\n\n".join(blocks)


def build_user_prompt(diff_text: str, hits: list[DocHit], recent_log: str) -> str:
    recent = recent_log.strip() or "(none)"
    return (
        f"## Code Diff (changes being pushed)\n```diff\n{diff_text}\n```\n\n"
        f"## Documentation Excerpts\n{format_hits(hits)}\n\n"
        f"## Recent Commits\n{recent}\n"
    )
