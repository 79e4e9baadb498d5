"""
Helpers for turning free-form model output into Python data.

Gemini often wraps JSON in ```json fences or adds a sentence before it,
so the helpers strip fences and then grab the outermost array/object.
"""
import json
import re
from typing import Any, Dict, List, Optional

from applyos.core.exceptions import LLMError

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text or "").strip()


def extract_json_array(text: str) -> Optional[List[Any]]:
    """
    Return the first [...] block in text parsed as a list, or None.

    >>> extract_json_array('Sure! ```json\\n["Why us?"]\\n```')
    ['Why us?']
    """
    match = _ARRAY_PATTERN.search(strip_code_fences(text))
    if not match:
        return None
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the outermost {...} block in text parsed as a dict, or None."""
    match = _OBJECT_PATTERN.search(strip_code_fences(text))
    if not match:
        return None
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def require_json_object(text: str, what: str) -> Dict[str, Any]:
    """Like extract_json_object, but a missing object is an LLMError."""
    value = extract_json_object(text)
    if value is None:
        raise LLMError(f"Could not parse {what} from AI response")
    return value


def clean_string_list(values: Any) -> List[str]:
    """
    Keep non-empty strings, stripped, in order.

    A lone string counts as a one-item list; any other non-list is empty.
    """
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]
