# src/chatbridge/providers/anthropic_adapter.py
from __future__ import annotations
from typing import Any, Sequence

from chatbridge.core.models import Message
from chatbridge.core.ports import OutboundRequest
from chatbridge.providers.registry import ProviderRegistry
from chatbridge.providers.shape import body_as_text, dig_text, first_message


@ProviderRegistry.register("anthropic")
class AnthropicAdapter:
    """
    Messages API:
    - credential goes in 'x-api-key', never in the body
    - reply is the first content block's text
    """

    provider_id = "anthropic"
    endpoint_url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"
    model = "claude-sonnet-4-5-20250929"
    max_tokens = 2048

    def build_request(self, history: Sequence[Message], credential: str) -> OutboundRequest:
        return OutboundRequest(
            url=self.endpoint_url,
            headers={
                "Content-Type": "application/json",
                "x-api-key": credential,
                "anthropic-version": self.api_version,
            },
            body={
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [m.to_wire() for m in history],
            },
        )

    def parse_success(self, body: Any) -> str:
        return dig_text(body, "content", 0, "text")

    def parse_error(self, body: Any, status: int) -> str:
        return first_message(body, ("error", "message")) or body_as_text(body)
