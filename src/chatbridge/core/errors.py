from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    TRANSPORT_FAILURE = "transport_failure"
    UPSTREAM_ERROR = "upstream_error"
    INTERNAL_FAULT = "internal_fault"


class GatewayError(Exception):
    """
    Classified failure raised inside the gateway.
    Never crosses Gateway.handle(); it is turned into a failure ChatResult there.
    """
    def __init__(self, kind: ErrorKind, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.upstream_status = upstream_status

    def to_result(self):
        from .models import ChatResult
        return ChatResult.failure(self.kind, self.message, upstream_status=self.upstream_status)


class ResponseShapeError(ValueError):
    """An upstream body did not have the fields an adapter expects."""


class SettingsRequiredError(RuntimeError):
    """
    Client-side: no provider/credential configured yet.
    The fix is to enter settings, not to retry.
    """
