"""Strict JSON extraction for model responses.

Models are asked for bare JSON but sometimes wrap it in a markdown code fence.
That single wrapper is removed; anything else that fails to parse is rejected
as a :class:`MalformedResponseError`.
"""

from __future__ import annotations

import json
import re

from autopilot.utils.exceptions import MalformedResponseError

_FENCE_RE = re.compile(r"^```[a-zA-Z]*[ \t]*\n?(.*?)\n?```$", re.DOTALL)


def strip_wrappers(text: str) -> str:
    """Trim whitespace and a surrounding markdown fence, nothing more."""
    text = text.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_json_object(text: str) -> dict:
    """Parse *text* as a single JSON object.

    Raises :class:`MalformedResponseError` when the text is not a JSON object
    after wrapper stripping.
    """
    if text is None:
        raise MalformedResponseError("empty response")

    body = strip_wrappers(text)
    if not body:
        raise MalformedResponseError("empty response", raw=text)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"invalid JSON: {exc}", raw=text) from exc

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"expected a JSON object, got {type(data).__name__}", raw=text,
        )
    return data
