"""Helpers for pulling JSON out of free-form model output."""

import json
import re
from typing import Any

_CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def extract_json_from_response(content: str) -> str:
    """Extract JSON from response, handling markdown code blocks.

    Handles multiple patterns:
    - Raw JSON (no code blocks)
    - JSON in ```json code block
    - JSON in generic ``` code block
    - JSON surrounded by prose (outermost object or array)

    Raises:
        ValueError: If no JSON content can be extracted
    """
    for match in _CODE_BLOCK_PATTERN.findall(content):
        if match.strip():
            return match.strip()

    stripped = content.strip()
    if not stripped:
        raise ValueError("No JSON content found in response")

    if stripped[0] in "[{":
        return stripped

    # Prose around the payload: take the outermost object or array
    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i != -1]
    if not starts:
        raise ValueError("No JSON content found in response")
    start = min(starts)
    closer = "}" if stripped[start] == "{" else "]"
    end = stripped.rfind(closer)
    if end <= start:
        raise ValueError("Unterminated JSON content in response")
    return stripped[start : end + 1]


def parse_json_object(content: str) -> dict[str, Any]:
    """Parse content into a JSON object.

    A bare top-level array is wrapped as ``{"items": [...]}`` so callers can
    always validate against an object schema.

    Raises:
        ValueError: If content is not valid JSON or not an object/array
    """
    parsed = json.loads(extract_json_from_response(content))
    if isinstance(parsed, list):
        return {"items": parsed}
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected JSON object, got {type(parsed).__name__}")
    return parsed
