from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatbridge.core.errors import ErrorKind, GatewayError
from chatbridge.core.gateway import Gateway
from chatbridge.core.models import ChatRequest, ChatResult

logger = logging.getLogger(__name__)

# Static on every response, preflight or not
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ChatPayload(BaseModel):
    provider: Optional[str] = None
    apiKey: Optional[str] = None
    messages: Optional[List[Dict[str, Any]]] = None


def status_for(result: ChatResult) -> int:
    if result.ok:
        return 200
    kind = result.error_kind
    if kind in (ErrorKind.INVALID_INPUT, ErrorKind.UNSUPPORTED_PROVIDER):
        return 400
    if kind is ErrorKind.TRANSPORT_FAILURE:
        return 502
    if kind is ErrorKind.UPSTREAM_ERROR:
        status = result.upstream_status
        # forward the provider's own error status; a bad 2xx body has none to forward
        return status if status is not None and 400 <= status <= 599 else 500
    return 500


def _error(status: int, message: str, kind: ErrorKind) -> JSONResponse:
    return JSONResponse({"error": message, "kind": kind.value}, status_code=status, headers=CORS_HEADERS)


def _result_response(result: ChatResult) -> JSONResponse:
    if result.ok:
        return JSONResponse({"content": result.reply_text})
    return _error(status_for(result), result.message or "Internal server error", result.error_kind)


def create_app(
    config_path: Optional[Path] = None,
    *,
    gateway: Optional[Gateway] = None,
) -> FastAPI:
    cfg: Dict[str, Any] = {}
    if gateway is None:
        from chatbridge.bootstrap import build_app

        ctx = build_app(Path(config_path or "config/default.yaml"))
        cfg, gateway = ctx["cfg"], ctx["gateway"]

    app = FastAPI()
    app.state.cfg = cfg
    app.state.gateway = gateway

    @app.middleware("http")
    async def _cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(_request: Request, _exc: RequestValidationError):
        return _error(400, "Missing required fields", ErrorKind.INVALID_INPUT)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def _unhandled(_request: Request, exc: Exception):
        logger.error("Unhandled error in request: %s", type(exc).__name__, exc_info=exc)
        return _error(500, "Internal server error", ErrorKind.INTERNAL_FAULT)

    @app.options("/api/chat")
    async def api_chat_options() -> Response:
        return Response(status_code=200)

    @app.post("/api/chat")
    async def api_chat(payload: ChatPayload):
        try:
            request = ChatRequest.from_payload(payload.model_dump())
        except GatewayError as e:
            return _result_response(e.to_result())
        result = await app.state.gateway.handle(request)
        return _result_response(result)

    @app.get("/api/providers")
    async def api_providers():
        return JSONResponse({"providers": app.state.gateway.providers})

    return app


def run(
    *,
    config: Path,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    import uvicorn

    from chatbridge.bootstrap import build_app

    ctx = build_app(config)
    server = ctx["cfg"]["server"]
    app = create_app(gateway=ctx["gateway"])
    app.state.cfg = ctx["cfg"]
    uvicorn.run(app, host=host or server["host"], port=port or int(server["port"]))
