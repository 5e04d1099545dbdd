# tests/unit/test_gateway.py

from __future__ import annotations
import sys
import json
import asyncio
from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.core.errors import ErrorKind
from chatbridge.core.gateway import Gateway
from chatbridge.core.models import ChatRequest, ChatResult, Message

KEY = "sk-test-abcdef123456"


# -------- helpers --------

class FakeUpstream:
    """Deterministic upstream: records every request, answers with a fixed response."""

    def __init__(self, status: int = 200, body: Any = None, text: str | None = None):
        self.status = status
        self.body = body
        self.text = text
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.body)

    @property
    def calls(self) -> int:
        return len(self.requests)


def gateway_for(upstream) -> Gateway:
    return Gateway(transport=httpx.MockTransport(upstream))


def req(provider: str = "anthropic", key: str = KEY, history=None) -> ChatRequest:
    if history is None:
        history = (Message("user", "hi"),)
    return ChatRequest(provider_id=provider, credential=key, history=tuple(history))


def run(coro):
    return asyncio.run(coro)


# -------- tests --------

def test_anthropic_success_and_wire_format():
    up = FakeUpstream(body={"content": [{"type": "text", "text": "hello"}]})
    res = run(gateway_for(up).handle(req("anthropic")))

    assert res == ChatResult.success("hello")
    assert up.calls == 1
    sent = up.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "https://api.anthropic.com/v1/messages"
    assert sent.headers["x-api-key"] == KEY
    assert sent.headers["anthropic-version"] == "2023-06-01"
    body: Dict[str, Any] = json.loads(sent.content)
    assert body["messages"] == [{"role": "user", "content": "hi"}]
    assert KEY not in sent.content.decode()


def test_openai_success_and_wire_format():
    up = FakeUpstream(body={"choices": [{"message": {"role": "assistant", "content": "hello"}}]})
    res = run(gateway_for(up).handle(req("openai")))

    assert res == ChatResult.success("hello")
    sent = up.requests[0]
    assert str(sent.url) == "https://api.openai.com/v1/chat/completions"
    assert sent.headers["authorization"] == f"Bearer {KEY}"
    assert KEY not in sent.content.decode()


def test_provider_lookup_is_case_insensitive():
    up = FakeUpstream(body={"content": [{"text": "ok"}]})
    assert run(gateway_for(up).handle(req("Anthropic"))).reply_text == "ok"


@pytest.mark.parametrize("request_obj", [
    req(history=()),
    req(key=""),
    req(provider=""),
    req(history=(Message("user", "a"), Message("assistant", "b"))),
    req(history=(Message("system", "a"),)),  # type: ignore[arg-type]
    req(provider=123),  # type: ignore[arg-type]
    req(key=123),  # type: ignore[arg-type]
    req(key="sk-café"),
    req(key="sk-abc def"),
    req(key="sk-abc\n"),
    None,
])
def test_invalid_input_makes_no_network_call(request_obj):
    up = FakeUpstream(body={"content": [{"text": "never"}]})
    res = run(gateway_for(up).handle(request_obj))
    assert res.error_kind is ErrorKind.INVALID_INPUT
    assert up.calls == 0


def test_unknown_provider_makes_no_network_call():
    up = FakeUpstream(body={})
    res = run(gateway_for(up).handle(req("gemini")))
    assert res.error_kind is ErrorKind.UNSUPPORTED_PROVIDER
    assert res.message == "Invalid provider"
    assert up.calls == 0


def test_upstream_401_maps_nested_message():
    up = FakeUpstream(status=401, body={"error": {"type": "authentication_error", "message": "bad key"}})
    res = run(gateway_for(up).handle(req("anthropic")))
    assert res == ChatResult.failure(ErrorKind.UPSTREAM_ERROR, "bad key", upstream_status=401)


def test_upstream_error_without_message_uses_raw_body():
    up = FakeUpstream(status=429, body={"detail": "slow down"})
    res = run(gateway_for(up).handle(req("anthropic")))
    assert res.error_kind is ErrorKind.UPSTREAM_ERROR
    assert res.upstream_status == 429
    assert "slow down" in res.message


def test_upstream_error_with_unparseable_body_is_generic():
    up = FakeUpstream(status=502, text="<html>Bad Gateway</html>")
    res = run(gateway_for(up).handle(req("openai")))
    assert res == ChatResult.failure(
        ErrorKind.UPSTREAM_ERROR, "Upstream provider returned HTTP 502", upstream_status=502
    )


def test_empty_choices_is_upstream_error_not_crash():
    up = FakeUpstream(body={"choices": []})
    res = run(gateway_for(up).handle(req("openai")))
    assert res.error_kind is ErrorKind.UPSTREAM_ERROR
    assert res.upstream_status == 200


def test_success_body_not_json_is_upstream_error():
    up = FakeUpstream(status=200, text="definitely not json")
    res = run(gateway_for(up).handle(req("anthropic")))
    assert res.error_kind is ErrorKind.UPSTREAM_ERROR


def test_echoed_credential_is_redacted():
    up = FakeUpstream(status=401, body={"error": {"message": f"Incorrect API key provided: {KEY}."}})
    res = run(gateway_for(up).handle(req("openai")))
    assert KEY not in res.message
    assert "[REDACTED]" in res.message


def test_masked_key_echo_is_redacted():
    up = FakeUpstream(status=401, body={"error": {"message": "Incorrect API key provided: sk-abc***wxyz."}})
    res = run(gateway_for(up).handle(req("openai")))
    assert "sk-abc" not in res.message


def test_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    res = run(Gateway(transport=httpx.MockTransport(handler)).handle(req()))
    assert res.error_kind is ErrorKind.TRANSPORT_FAILURE
    assert "Name or service not known" in res.message
    assert res.upstream_status is None


def test_timeout_is_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    res = run(Gateway(transport=httpx.MockTransport(handler)).handle(req()))
    assert res.error_kind is ErrorKind.TRANSPORT_FAILURE


def test_unexpected_adapter_failure_is_internal_fault():
    class Broken:
        provider_id = "broken"
        endpoint_url = "http://broken.invalid"

        def build_request(self, history, credential):
            raise RuntimeError(f"exploded with {credential}")

    up = FakeUpstream(body={})
    gw = Gateway({"broken": Broken()}, transport=httpx.MockTransport(up))
    res = run(gw.handle(req("broken")))
    assert res == ChatResult.failure(ErrorKind.INTERNAL_FAULT, "Internal server error")
    assert up.calls == 0


def test_handle_is_idempotent_with_deterministic_upstream():
    up = FakeUpstream(body={"choices": [{"message": {"content": "same"}}]})
    gw = gateway_for(up)
    first = run(gw.handle(req("openai")))
    second = run(gw.handle(req("openai")))
    assert first == second
    assert up.calls == 2


def test_cancel_inflight_releases_request_and_delivers_nothing():
    async def scenario():
        entered = asyncio.Event()
        released: List[bool] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            entered.set()
            try:
                await asyncio.sleep(3600)
            finally:
                released.append(True)
            return httpx.Response(200, json={"content": [{"text": "late"}]})

        gw = Gateway(transport=httpx.MockTransport(handler))
        task = asyncio.ensure_future(gw.handle(req()))
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return released

    assert run(scenario()) == [True]


def test_concurrent_calls_are_independent():
    def handler(request: httpx.Request) -> httpx.Response:
        text = json.loads(request.content)["messages"][-1]["content"]
        return httpx.Response(200, json={"content": [{"text": text.upper()}]})

    gw = Gateway(transport=httpx.MockTransport(handler))

    async def scenario():
        return await asyncio.gather(*(gw.handle(req(history=(Message("user", w),))) for w in ("a", "b", "c")))

    assert [r.reply_text for r in run(scenario())] == ["A", "B", "C"]


def test_providers_listing():
    assert Gateway().providers == ["anthropic", "openai"]
