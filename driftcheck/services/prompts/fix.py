"""Prompt for regenerating a flagged documentation region."""

from driftcheck.core.models import DriftIssue

PROMPT_VERSION = "fix-v2"

SYSTEM_PROMPT = """You are a documentation editor. You receive ONE flagged region of a documentation file, the surrounding context, and a description of what is factually wrong.

Rules:
1. Return ONLY the replacement text for the flagged region, in the "replacement" field
2. Make minimal changes - only fix what is factually wrong
3. Preserve formatting, indentation, markup and line structure
4. Never rewrite or repeat the surrounding context"""


def build_user_prompt(
    issue: DriftIssue,
    region: str,
    before: str,
    after: str,
) -> str:
    return f"""## Issue
File: {issue.path}
Lines: {issue.start_line}-{issue.end_line}
Problem: {issue.description or issue.claim}

## Code Evidence
{issue.evidence or "(none)"}

## Suggested Fix
{issue.suggested_fix or "(none)"}

## Context Before (read-only)
```
{before}
```

## Flagged Region (replace this)
```
{region}
```

## Context After (read-only)
```
{after}
```"""
