# src/chatbridge/providers/shape.py
"""
Guarded access into upstream JSON bodies.

Providers change their schemas without notice, so adapters never index into a
body directly. Every lookup goes through dig(), which raises ResponseShapeError
instead of KeyError/IndexError/TypeError.
"""
from __future__ import annotations
import json
from typing import Any, Optional, Union

from chatbridge.core.errors import ResponseShapeError

PathPart = Union[str, int]


def dig(body: Any, *path: PathPart) -> Any:
    cur = body
    for part in path:
        if isinstance(part, int):
            if not isinstance(cur, list) or not (0 <= part < len(cur)):
                raise ResponseShapeError(f"Missing element [{part}] in upstream response")
        elif not isinstance(cur, dict) or part not in cur:
            raise ResponseShapeError(f"Missing field '{part}' in upstream response")
        cur = cur[part]
    return cur


def dig_text(body: Any, *path: PathPart) -> str:
    value = dig(body, *path)
    if not isinstance(value, str):
        raise ResponseShapeError("Upstream response text is not a string")
    return value


def first_message(body: Any, *candidates: tuple) -> Optional[str]:
    """First non-empty string found at any of the candidate paths, else None."""
    for path in candidates:
        try:
            value = dig(body, *path)
        except ResponseShapeError:
            continue
        if isinstance(value, str) and value:
            return value
    return None


def body_as_text(body: Any) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, ensure_ascii=False)
