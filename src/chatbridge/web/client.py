# src/chatbridge/web/client.py
from __future__ import annotations
import logging
from typing import Any, Optional

import httpx

from chatbridge.core.errors import ErrorKind
from chatbridge.core.models import ChatRequest, ChatResult
from chatbridge.utils.redact import redact

logger = logging.getLogger(__name__)

_KINDS = {k.value: k for k in ErrorKind}


class RemoteGateway:
    """
    ChatBackend that talks to a running gateway over HTTP (POST /api/chat),
    the way the browser client does. Mirrors Gateway.handle(): never raises
    except on cancellation.
    """

    def __init__(self, base_url: str, *, timeout: float = 120.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def handle(self, request: ChatRequest) -> ChatResult:
        payload = {
            "provider": request.provider_id,
            "apiKey": request.credential,
            "messages": [m.to_wire() for m in request.history],
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.base_url}/api/chat", json=payload)
        except httpx.RequestError as e:
            return ChatResult.failure(
                ErrorKind.TRANSPORT_FAILURE,
                redact(str(e) or type(e).__name__, request.credential),
            )

        try:
            body: Any = resp.json()
        except ValueError:
            body = None

        if resp.is_success:
            content = body.get("content") if isinstance(body, dict) else None
            if isinstance(content, str):
                return ChatResult.success(content)
            return ChatResult.failure(ErrorKind.UPSTREAM_ERROR, "Unexpected response from gateway")

        message = body.get("error") if isinstance(body, dict) else None
        kind = _KINDS.get(body.get("kind")) if isinstance(body, dict) else None
        if kind is None:
            kind = ErrorKind.INTERNAL_FAULT if resp.status_code >= 500 else ErrorKind.UPSTREAM_ERROR
        # a 5xx here may be the gateway's own 500 for a bad upstream body, not the provider's status
        upstream_status = None
        if kind is ErrorKind.UPSTREAM_ERROR and 400 <= resp.status_code < 500:
            upstream_status = resp.status_code
        if not isinstance(message, str) or not message:
            message = f"Gateway returned HTTP {resp.status_code}"
        return ChatResult.failure(kind, redact(message, request.credential), upstream_status=upstream_status)
