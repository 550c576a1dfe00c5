"""Helpers for decoding JSON answers from LLM replies."""

from __future__ import annotations

import json
from typing import Any, Iterator

from .errors import LLMResponseError


def _json_candidates(raw: str) -> Iterator[str]:
    """Substrings of ``raw`` worth trying, most specific first"""
    if raw.startswith("```"):
        yield "\n".join(line for line in raw.split("\n") if not line.strip().startswith("```"))
    yield raw
    start, end = raw.find("{"), raw.rfind("}")
    if 0 <= start < end:
        yield raw[start:end + 1]


def parse_llm_json(raw: str) -> dict:
    """Parse the JSON object in an LLM reply.

    Handles markdown code fences and prose around the object. Returns an
    empty dict when no object can be decoded (top-level arrays included).
    """
    if not raw:
        return {}
    for text in _json_candidates(raw):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


def require_json_field(raw: str, key: str) -> Any:
    """Return ``key`` from the JSON object in ``raw``, or raise LLMResponseError."""
    data = parse_llm_json(raw)
    if key not in data:
        raise LLMResponseError(f"LLM response is missing {key!r}: {raw[:200]!r}")
    return data[key]
