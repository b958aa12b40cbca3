"""Shared JSON parsing utilities for model response handling.

Models often wrap the requested JSON object in prose or markdown fences.
These helpers recover the first complete object from such output.
"""

from __future__ import annotations

import json
import re


def fix_escape_sequences(text: str) -> str:
    """Fix invalid JSON escape sequences in model output.

    Models sometimes produce backslash sequences like ``\\_`` that are
    invalid in JSON strings. This replaces lone backslashes with
    double-backslashes where they don't form a valid JSON escape.
    """
    return re.sub(r'(?<!\\)\\(?!["\\/bfnrtu])', r"\\\\", text)


def strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from model response text.

    Args:
        text: Raw text potentially wrapped in code fences.

    Returns:
        Text with code fences removed.
    """
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1 :]
        if text.endswith("```"):
            text = text[: -len("```")]
        text = text.strip()
    return text


def extract_first_json_object(text: str) -> str | None:
    """Extract the first balanced ``{...}`` block from text.

    Braces inside JSON strings are ignored, so a summary containing ``}``
    does not end the object early.

    Args:
        text: Raw text potentially containing a JSON object.

    Returns:
        Extracted object string, or None if no balanced pair is found.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str) -> dict[str, object] | None:
    """Parse the first JSON object in a model response.

    Args:
        text: Raw response text.

    Returns:
        Parsed dict, or None when no object can be recovered.
    """
    extracted = extract_first_json_object(strip_markdown_fences(text))
    if extracted is None:
        return None

    for candidate in (extracted, fix_escape_sequences(extracted)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
