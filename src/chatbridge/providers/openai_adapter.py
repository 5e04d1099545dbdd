# src/chatbridge/providers/openai_adapter.py
from __future__ import annotations
from typing import Any, Sequence

from chatbridge.core.models import Message
from chatbridge.core.ports import OutboundRequest
from chatbridge.providers.registry import ProviderRegistry
from chatbridge.providers.shape import body_as_text, dig_text, first_message


@ProviderRegistry.register("openai")
class OpenAIAdapter:
    """
    Chat Completions API:
    - credential goes in a bearer 'Authorization' header
    - reply is choices[0].message.content; an empty choices list is an upstream error
    """

    provider_id = "openai"
    endpoint_url = "https://api.openai.com/v1/chat/completions"
    model = "gpt-4"

    def build_request(self, history: Sequence[Message], credential: str) -> OutboundRequest:
        return OutboundRequest(
            url=self.endpoint_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {credential}",
            },
            body={
                "model": self.model,
                "messages": [m.to_wire() for m in history],
            },
        )

    def parse_success(self, body: Any) -> str:
        return dig_text(body, "choices", 0, "message", "content")

    def parse_error(self, body: Any, status: int) -> str:
        # OpenAI nests the message under 'error'; some proxies put it at the top level
        return first_message(body, ("message",), ("error", "message")) or body_as_text(body)
