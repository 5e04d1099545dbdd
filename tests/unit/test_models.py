# tests/unit/test_models.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.core.errors import ErrorKind, GatewayError
from chatbridge.core.models import ChatRequest, ChatResult, ClientSettings, Message


def test_chat_result_is_exactly_one_variant():
    ok = ChatResult.success("hi")
    assert ok.ok and ok.reply_text == "hi" and ok.error_kind is None

    bad = ChatResult.failure(ErrorKind.UPSTREAM_ERROR, "nope", upstream_status=429)
    assert not bad.ok and bad.reply_text is None and bad.upstream_status == 429

    with pytest.raises(ValueError):
        ChatResult()
    with pytest.raises(ValueError):
        ChatResult(reply_text="x", error_kind=ErrorKind.INTERNAL_FAULT)
    with pytest.raises(ValueError):
        ChatResult(reply_text="x", message="stray")


def test_empty_reply_text_is_still_success():
    assert ChatResult.success("").ok


def test_from_payload_builds_immutable_history():
    req = ChatRequest.from_payload({
        "provider": "anthropic",
        "apiKey": "sk-x",
        "messages": [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}],
    })
    assert req.provider_id == "anthropic"
    assert req.history == (Message("user", "a"), Message("assistant", "b"))
    assert isinstance(req.history, tuple)


@pytest.mark.parametrize("payload", [
    {},
    {"provider": "anthropic", "apiKey": "k"},
    {"provider": "anthropic", "messages": [{"role": "user", "content": "a"}]},
    {"apiKey": "k", "messages": [{"role": "user", "content": "a"}]},
    {"provider": "anthropic", "apiKey": "k", "messages": []},
])
def test_from_payload_missing_fields(payload):
    with pytest.raises(GatewayError) as ei:
        ChatRequest.from_payload(payload)
    assert ei.value.kind is ErrorKind.INVALID_INPUT
    assert ei.value.message == "Missing required fields"


@pytest.mark.parametrize("messages", [
    [{"role": "system", "content": "a"}],
    [{"role": "user", "content": 3}],
    ["just a string"],
])
def test_from_payload_malformed_messages(messages):
    with pytest.raises(GatewayError) as ei:
        ChatRequest.from_payload({"provider": "openai", "apiKey": "k", "messages": messages})
    assert ei.value.kind is ErrorKind.INVALID_INPUT


def test_credential_not_in_repr():
    req = ChatRequest("openai", "sk-secret-value", (Message("user", "hi"),))
    settings = ClientSettings("openai", "sk-secret-value")
    assert "sk-secret-value" not in repr(req)
    assert "sk-secret-value" not in repr(settings)


def test_gateway_error_to_result():
    res = GatewayError(ErrorKind.UPSTREAM_ERROR, "bad key", upstream_status=401).to_result()
    assert res == ChatResult.failure(ErrorKind.UPSTREAM_ERROR, "bad key", upstream_status=401)
