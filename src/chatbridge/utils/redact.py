from __future__ import annotations
import re
from typing import Optional

REDACTED = "[REDACTED]"

# Provider key shapes, including partially masked echoes like "sk-abc***wxyz".
_KEY_PATTERN = re.compile(r"\bsk-(?:ant-)?[A-Za-z0-9_\-\*]{4,}")


def redact(text: Optional[str], *secrets: Optional[str]) -> str:
    """
    Strip credentials from text that may leave the process (error messages, logs).
    Exact secrets are replaced first, then anything shaped like a provider key.
    """
    if not text:
        return ""
    out = str(text)
    for s in secrets:
        if s:
            out = out.replace(s, REDACTED)
    return _KEY_PATTERN.sub(REDACTED, out)


def truncate(text: str, limit: int = 500) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
