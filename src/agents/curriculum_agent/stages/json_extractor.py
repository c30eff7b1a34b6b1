"""
Recover a JSON object from model prose.

Cascade, first success wins: whole text -> fenced ``` block -> first '{' to last '}'.
Failure is a value (ExtractionFailure), never an exception; callers substitute
their own empty result.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_BRACE_SPAN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ExtractionFailure:
    reason: str = "No valid JSON found in response"

    def __bool__(self) -> bool:
        return False


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def extract_json(text: Any) -> Union[Dict[str, Any], ExtractionFailure]:
    if not isinstance(text, str) or not text.strip():
        return ExtractionFailure("Empty response")

    direct = _loads_object(text.strip())
    if direct is not None:
        return direct

    for match in _FENCED_BLOCK.finditer(text):
        fenced = _loads_object(match.group(1))
        if fenced is not None:
            return fenced

    span = _BRACE_SPAN.search(text)
    if span:
        braced = _loads_object(span.group(0))
        if braced is not None:
            return braced

    return ExtractionFailure()


def extract_list(text: Any, key: str) -> list:
    """The list under `key` in the recovered object, or [] for any failure or wrong shape."""
    parsed = extract_json(text)
    if isinstance(parsed, ExtractionFailure):
        return []
    value = parsed.get(key)
    return value if isinstance(value, list) else []
