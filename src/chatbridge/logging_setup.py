from __future__ import annotations
import logging
import sys
from typing import Optional

from chatbridge.utils.redact import redact

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_NAME = "chatbridge"


class RedactingFilter(logging.Filter):
    """Masks provider-key-shaped tokens in every record before it is emitted."""

    _formatter = logging.Formatter()

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        cleaned = redact(msg)
        if cleaned != msg:
            record.msg = cleaned
            record.args = None
        # tracebacks can carry keys too; the formatter reuses a pre-set exc_text
        if record.exc_info and not record.exc_text:
            record.exc_text = redact(self._formatter.formatException(record.exc_info))
        return True


def configure_logging(level: str = "INFO", stream=None) -> logging.Logger:
    """
    Attach one stream handler to the 'chatbridge' logger. Safe to call repeatedly.
    """
    logger = logging.getLogger("chatbridge")
    logger.setLevel(_level(level))
    for h in logger.handlers:
        if h.get_name() == _HANDLER_NAME:
            h.setLevel(_level(level))
            return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(_level(level))
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(RedactingFilter())
    logger.addHandler(handler)
    return logger


def _level(level: Optional[str]) -> int:
    value = logging.getLevelName(str(level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO
