# src/chatbridge/core/gateway.py
from __future__ import annotations
import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from chatbridge.core.errors import ErrorKind, GatewayError, ResponseShapeError
from chatbridge.core.models import ChatRequest, ChatResult, Message, ROLES
from chatbridge.core.ports import ProviderAdapter
from chatbridge.providers.registry import ProviderRegistry
from chatbridge.utils.redact import redact, truncate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


def _header_safe(value: str) -> bool:
    return value.isascii() and value.isprintable() and not any(c.isspace() for c in value)


class Gateway:
    """
    Provider-normalization gateway.

    handle() takes a ChatRequest, sends exactly one POST to the selected provider
    and returns a ChatResult. Every failure path ends in a failure ChatResult;
    only asyncio.CancelledError propagates, so an abandoned request closes its
    connection and delivers nothing.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[str, ProviderAdapter]] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        source = adapters if adapters is not None else ProviderRegistry.adapters()
        self._adapters: Dict[str, ProviderAdapter] = {k.lower(): v for k, v in source.items()}
        self._timeout = timeout
        # Injected for tests; None means httpx's default network transport
        self._transport = transport

    @property
    def providers(self) -> list[str]:
        return sorted(self._adapters)

    async def handle(self, request: ChatRequest) -> ChatResult:
        try:
            return await self._handle(request)
        except GatewayError as e:
            return e.to_result()
        except Exception:
            logger.exception("Unhandled gateway failure (provider=%s)", getattr(request, "provider_id", None))
            return ChatResult.failure(ErrorKind.INTERNAL_FAULT, "Internal server error")

    async def _handle(self, request: ChatRequest) -> ChatResult:
        self._validate(request)
        adapter = self._lookup(request.provider_id)
        credential = request.credential

        outbound = adapter.build_request(request.history, credential)
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(outbound.url, headers=outbound.headers, json=outbound.body)
        except httpx.RequestError as e:
            logger.warning("Transport failure calling %s: %s", adapter.provider_id, type(e).__name__)
            detail = str(e) or type(e).__name__
            raise GatewayError(ErrorKind.TRANSPORT_FAILURE, redact(detail, credential))

        logger.info(
            "provider=%s status=%s elapsed=%.2fs",
            adapter.provider_id, resp.status_code, time.monotonic() - started,
        )

        if not resp.is_success:
            raise GatewayError(
                ErrorKind.UPSTREAM_ERROR,
                self._error_message(adapter, resp, credential),
                upstream_status=resp.status_code,
            )

        try:
            body = resp.json()
            text = adapter.parse_success(body)
        except ValueError as e:
            # ResponseShapeError is a ValueError, as is a JSON decode failure
            logger.warning("Unexpected success body from %s: %s", adapter.provider_id, e)
            raise GatewayError(
                ErrorKind.UPSTREAM_ERROR,
                f"Unexpected response from {adapter.provider_id}",
                upstream_status=resp.status_code,
            )
        return ChatResult.success(text)

    # Internal helpers

    def _validate(self, request: Any) -> None:
        if not isinstance(request, ChatRequest):
            raise GatewayError(ErrorKind.INVALID_INPUT, "Expected a ChatRequest")
        if not request.provider_id or not request.credential or not request.history:
            raise GatewayError(ErrorKind.INVALID_INPUT, "Missing required fields")
        if not isinstance(request.provider_id, str) or not isinstance(request.credential, str):
            raise GatewayError(ErrorKind.INVALID_INPUT, "'provider' and 'apiKey' must be strings")
        if not _header_safe(request.credential):
            # the key travels in an HTTP header; anything else fails at encode time
            raise GatewayError(ErrorKind.INVALID_INPUT, "API key contains invalid characters")
        if not isinstance(request.history, (tuple, list)):
            raise GatewayError(ErrorKind.INVALID_INPUT, "Malformed message in history")
        for m in request.history:
            if not isinstance(m, Message) or m.role not in ROLES or not isinstance(m.content, str):
                raise GatewayError(ErrorKind.INVALID_INPUT, "Malformed message in history")
        if request.history[-1].role != "user":
            raise GatewayError(ErrorKind.INVALID_INPUT, "History must end with a user message")

    def _lookup(self, provider_id: str) -> ProviderAdapter:
        adapter = self._adapters.get(provider_id.lower())
        if adapter is None:
            raise GatewayError(ErrorKind.UNSUPPORTED_PROVIDER, "Invalid provider")
        return adapter

    def _error_message(self, adapter: ProviderAdapter, resp: httpx.Response, credential: str) -> str:
        generic = f"Upstream provider returned HTTP {resp.status_code}"
        try:
            message = adapter.parse_error(resp.json(), resp.status_code)
        except (ValueError, ResponseShapeError):
            logger.warning("Unreadable error body from %s (status=%s)", adapter.provider_id, resp.status_code)
            return generic
        if not isinstance(message, str) or not message.strip():
            return generic
        return truncate(redact(message, credential))
