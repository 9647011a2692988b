from __future__ import annotations

import json
import re
from dataclasses import dataclass

_FENCE_START = re.compile(r"^```(json)?", re.IGNORECASE)
_FENCE_END = re.compile(r"```$")
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class Parsed:
    payload: dict


@dataclass(frozen=True)
class Malformed:
    reason: str


ParseResult = Parsed | Malformed


def _load_object(candidate: str) -> dict | None:
    try:
        value = json.loads(candidate)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text) -> ParseResult:
    """Pull the first JSON object out of LLM output, tolerating fences and surrounding prose."""
    if not isinstance(text, str):
        return Malformed("not_text")
    candidate = text.strip()
    if not candidate:
        return Malformed("empty")

    cleaned = _FENCE_END.sub("", _FENCE_START.sub("", candidate)).strip()
    if cleaned.startswith("{") and cleaned.endswith("}"):
        payload = _load_object(cleaned)
        if payload is not None:
            return Parsed(payload)

    # Model wrapped the object in prose; take the widest {...} span.
    match = _OBJECT_SPAN.search(cleaned)
    if not match:
        return Malformed("no_object")
    payload = _load_object(match.group(0))
    if payload is None:
        return Malformed("invalid_json")
    return Parsed(payload)
