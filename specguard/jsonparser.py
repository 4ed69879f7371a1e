import re
import json
import logging
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


def clean_json_block(text: str) -> str:
    """Remove Markdown fences and a leading "json" label from model output."""
    s = re.sub(r'^\s*```(?:json)?\s*', '', text, flags=re.I)
    s = re.sub(r'\s*```\s*$', '', s)
    s = re.sub(r'^\s*json[:\s]*', '', s, flags=re.I)
    return s


def extract_json_object(text: str) -> str:
    """Extract the outermost {...} block from text."""
    match = re.search(r'\{.*\}', text, flags=re.S)
    if not match:
        raise ValueError("No JSON object found in model output")
    return match.group(0)


def clean_js_syntax(text: str) -> str:
    """Drop trailing commas, which models emit often enough to matter."""
    return re.sub(r',\s*(?=[}\]])', '', text)


def parse_json_object(text: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Parse a JSON object out of raw LLM output.

    Handles:
    - ```json ... ``` fences
    - leading prose or a "json" label before the object
    - trailing commas
    - control characters that are not valid inside JSON

    Raises:
        ValueError: If no JSON object can be found or parsed.
    """
    if isinstance(text, dict):
        return text

    s = clean_json_block(str(text or ""))
    s = extract_json_object(s)
    s = clean_js_syntax(s)
    # JSON allows tab, newline and carriage return; strip other control chars
    s = re.sub(r'[\x00-\x08\x0B\x0C\x0E-\x1F]', '', s)

    try:
        obj = json.loads(s)
    except json.JSONDecodeError as e:
        logger.debug("Failed to parse JSON. Raw snippet: %r", s[:500])
        raise ValueError(f"Could not parse JSON block. Raw snippet: {s[:200]!r}") from e

    if not isinstance(obj, dict):
        raise ValueError(f"Expected a JSON object, got {type(obj).__name__}")
    return obj
