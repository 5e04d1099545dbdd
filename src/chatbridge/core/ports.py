from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, Sequence

from .models import ChatRequest, ChatResult, Message


@dataclass(frozen=True)
class OutboundRequest:
    """A fully built upstream call: always POST with a JSON body."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)


class ProviderAdapter(Protocol):
    """
    Translation between normalized chat data and one provider's wire format.
    Implementations hold no mutable state and are shared by concurrent calls.
    """

    provider_id: str
    endpoint_url: str

    def build_request(self, history: Sequence[Message], credential: str) -> OutboundRequest:
        ...

    def parse_success(self, body: Any) -> str:
        """
        Return the reply text. Raise ResponseShapeError if the expected fields are missing.
        """
        ...

    def parse_error(self, body: Any, status: int) -> str:
        """
        Return a human-readable message for a non-success response body.
        """
        ...


class ChatBackend(Protocol):
    """
    Anything the client side can hand a ChatRequest to: the in-process Gateway
    or a RemoteGateway in front of a running server.
    """

    async def handle(self, request: ChatRequest) -> ChatResult:
        ...
