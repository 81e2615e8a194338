"""Clean up JSON returned by a chat model before parsing it.

Models wrap JSON in code fences, add chatter before or after it, and
sometimes stop mid-object when they hit the token cap. :func:`clean_json`
undoes the first two and closes whatever was left open, so a response cut
short still has a chance to parse.

Properties relied on by callers and tests:

* already-clean JSON comes back unchanged, and cleaning is idempotent;
* at most one closing bracket is appended per bracket left open (plus one
  quote when the text stops inside a string).
"""
from __future__ import annotations

import json
import re
from typing import Any

from autoapply.errors import MalformedCollaboratorResponse

_FENCE_START_RE = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_END_RE = re.compile(r"\s*```\s*$")

_CLOSERS = {"{": "}", "[": "]"}


def _scan(content: str) -> tuple[int, list[str], bool]:
    """Walk ``content`` (which starts with an opener).

    Returns the index where the first top-level value closes (-1 if it never
    does), the stack of brackets still open at the end, and whether the text
    ends inside a string literal.
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(content):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif stack and ch == _CLOSERS[stack[-1]]:
            stack.pop()
            if not stack:
                return i, [], False
    return -1, stack, in_string


def clean_json(content: str, opener: str = "{") -> str:
    """Return the outermost JSON object (or array, with ``opener="["``) in ``content``."""
    content = _FENCE_START_RE.sub("", content or "")
    content = _FENCE_END_RE.sub("", content).strip()

    start = content.find(opener)
    if start == -1:
        return content
    content = content[start:]

    end, still_open, in_string = _scan(content)
    if end != -1:
        return content[: end + 1]

    if in_string:
        content += '"'
    return content + "".join(_CLOSERS[ch] for ch in reversed(still_open))


def parse_json_object(content: str) -> dict[str, Any]:
    """Sanitize and parse a JSON object, or raise :class:`MalformedCollaboratorResponse`."""
    cleaned = clean_json(content, "{")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedCollaboratorResponse(f"Invalid JSON object: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedCollaboratorResponse(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_json_array(content: str) -> list[Any]:
    """Like :func:`parse_json_object` but for a top-level array.

    An object wrapping a single list value (``{"scores": [...]}``) is
    unwrapped, since models often add one.
    """
    stripped = _FENCE_START_RE.sub("", content or "")
    first_obj, first_arr = stripped.find("{"), stripped.find("[")
    if first_obj != -1 and (first_arr == -1 or first_obj < first_arr):
        data = parse_json_object(content)
        lists = [v for v in data.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]
        raise MalformedCollaboratorResponse("Expected a JSON array")

    cleaned = clean_json(content, "[")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedCollaboratorResponse(f"Invalid JSON array: {exc}") from exc
    if not isinstance(data, list):
        raise MalformedCollaboratorResponse(f"Expected a JSON array, got {type(data).__name__}")
    return data
