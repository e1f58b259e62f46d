"""
JSON helpers for model responses.
"""

import json
import re
from typing import Any

_OVER_ESCAPED_NEWLINE = re.compile(r'\\\\n')
_OVER_ESCAPED_QUOTE = re.compile(r'\\\\"')
_UNDEFINED_VALUE = re.compile(r':(\s*)undefined\b')
_TRAILING_COMMA = re.compile(r',\s*([}\]])')


def parse_json_from_text(text: str) -> Any:
    """
    Parse JSON from an LLM response, tolerating the usual noise.

    Handles:
    - Markdown code fences (```json ... ```)
    - Leading/trailing prose around the first object or array
    - Over-escaped newlines and quotes
    - ``undefined`` values and trailing commas

    Args:
        text: Raw response content from the model

    Returns:
        Parsed JSON value

    Raises:
        ValueError: If no valid JSON can be recovered
    """
    if not isinstance(text, str):
        raise ValueError(f"Invalid content type: {type(text)}, expected string")

    content = text.strip()

    # Remove markdown code blocks
    if content.startswith("```json"):
        content = content.split("```json", 1)[1].split("```")[0].strip()
    elif content.startswith("```"):
        parts = content.split("```")
        if len(parts) > 2:
            content = parts[1].strip()

    first_bracket = content.find('[')
    first_brace = content.find('{')
    start = -1
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        start = first_bracket
    elif first_brace != -1:
        start = first_brace

    if start > -1:
        end = content.rfind(']') if content[start] == '[' else content.rfind('}')
        if end > start:
            content = content[start:end + 1]

    content = _OVER_ESCAPED_NEWLINE.sub(r'\\n', content)
    content = _OVER_ESCAPED_QUOTE.sub(r'\\"', content)
    content = _UNDEFINED_VALUE.sub(r':\1null', content)
    content = _TRAILING_COMMA.sub(r'\1', content)

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError("The AI returned a response that was not valid JSON.") from e
