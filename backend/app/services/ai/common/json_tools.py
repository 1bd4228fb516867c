"""Strict JSON helpers for LLM replies."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n(?P<body>.*?)\r?\n?```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Return the body of a Markdown code fence wrapping the whole *text*.

    Text that is not a single fenced block is returned trimmed but otherwise
    untouched; prose around a fence is not stripped.
    """
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group("body").strip()
    return stripped


def loads_json_object(text: str) -> dict[str, Any] | None:
    """Parse *text* (optionally fenced) as a single JSON object.

    Returns ``None`` for anything else: empty input, invalid JSON, arrays,
    scalars, or JSON embedded in surrounding prose.
    """
    body = strip_code_fence(text)
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed
