"""Lenient JSON extraction for LLM completions: code fences, surrounding prose and
embedded objects are tolerated, and failures come back as a typed result instead of raising."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

_FENCE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class JsonParseResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    raw: str = ""


def strip_code_fences(s: str) -> str:
    """Return the body of the first ```json fence if any, else the text with stray fences removed."""
    s = (s or "").strip()
    m = _FENCE_BLOCK_RE.search(s)
    if m:
        return m.group(1).strip()
    s = re.sub(r"^\s*```(?:json)?\s*", "", s, flags=re.IGNORECASE)
    s = re.sub(r"\s*```\s*$", "", s)
    return s.strip()


def trim_to_braces(s: str) -> str:
    """Drop everything before the first '{' and after the last '}'."""
    start = s.find("{")
    end = s.rfind("}")
    if start == -1 or end == -1 or end < start:
        return s
    return s[start : end + 1]


def extract_first_json_object(s: str) -> Optional[str]:
    # Find the first balanced {...} object. This avoids grabbing too much
    # when the response contains additional braces later.
    start = s.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(s)):
        ch = s[i]
        if in_string:
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return s[start : i + 1]
    return None


def _as_object(obj: Any) -> Optional[Dict[str, Any]]:
    if isinstance(obj, dict):
        return obj
    # Sometimes a model returns a single-element list with a dict.
    if isinstance(obj, list) and len(obj) == 1 and isinstance(obj[0], dict):
        return obj[0]
    return None


def parse_lenient_json(text: Optional[str]) -> JsonParseResult:
    """
    Best-effort JSON object parser for LLM responses.

    Tries, in order: the fence-stripped text as-is, the text trimmed to its
    outermost braces, then the first balanced object. Never raises.
    """
    raw = text or ""
    stripped = strip_code_fences(raw)
    if not stripped:
        return JsonParseResult(ok=False, error="empty response", raw=raw)

    last_error = "no JSON object found"
    candidates = [stripped, trim_to_braces(stripped)]
    embedded = extract_first_json_object(stripped)
    if embedded:
        candidates.append(embedded)

    seen = set()
    for candidate in candidates:
        if candidate in seen:
            continue
        seen.add(candidate)
        try:
            obj = json.loads(candidate)
        except json.JSONDecodeError as je:
            last_error = f"json_decode_error: {je}"
            continue
        data = _as_object(obj)
        if data is not None:
            return JsonParseResult(ok=True, data=data, raw=raw)
        last_error = f"expected a JSON object, got {type(obj).__name__}"

    return JsonParseResult(ok=False, error=last_error, raw=raw)
