# src/chatbridge/core/models.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from .errors import ErrorKind, GatewayError

Role = Literal["user", "assistant"]
ROLES = ("user", "assistant")


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ClientSettings:
    """Provider selection plus the credential scoped to it."""
    provider_id: str
    credential: str

    def __repr__(self) -> str:
        # keep the key out of tracebacks and debug output
        return f"ClientSettings(provider_id={self.provider_id!r}, credential='***')"


@dataclass(frozen=True)
class ChatRequest:
    provider_id: str
    credential: str
    history: Tuple[Message, ...]

    def __repr__(self) -> str:
        return (
            f"ChatRequest(provider_id={self.provider_id!r}, credential='***', "
            f"history=<{len(self.history)} messages>)"
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChatRequest":
        """
        Build a request from the inbound JSON shape {provider, apiKey, messages}.
        Raises GatewayError(INVALID_INPUT) on missing or malformed fields.
        """
        if not isinstance(payload, Mapping):
            raise GatewayError(ErrorKind.INVALID_INPUT, "Request body must be a JSON object")

        provider = payload.get("provider")
        api_key = payload.get("apiKey")
        raw_messages = payload.get("messages")
        if not provider or not api_key or not raw_messages:
            raise GatewayError(ErrorKind.INVALID_INPUT, "Missing required fields")
        if not isinstance(provider, str) or not isinstance(api_key, str):
            raise GatewayError(ErrorKind.INVALID_INPUT, "'provider' and 'apiKey' must be strings")
        if not isinstance(raw_messages, list):
            raise GatewayError(ErrorKind.INVALID_INPUT, "'messages' must be a list")

        history: List[Message] = []
        for i, m in enumerate(raw_messages):
            if not isinstance(m, Mapping):
                raise GatewayError(ErrorKind.INVALID_INPUT, f"messages[{i}] must be an object")
            role, content = m.get("role"), m.get("content")
            if role not in ROLES:
                raise GatewayError(ErrorKind.INVALID_INPUT, f"messages[{i}].role must be 'user' or 'assistant'")
            if not isinstance(content, str):
                raise GatewayError(ErrorKind.INVALID_INPUT, f"messages[{i}].content must be a string")
            history.append(Message(role=role, content=content))

        return cls(provider_id=provider, credential=api_key, history=tuple(history))


@dataclass(frozen=True)
class ChatResult:
    """
    Tagged result: either reply_text is set (success) or error_kind is set (failure).
    Use ChatResult.success() / ChatResult.failure() rather than the constructor.
    """
    reply_text: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    upstream_status: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.reply_text is None) == (self.error_kind is None):
            raise ValueError("ChatResult must be exactly one of success or failure")
        if self.reply_text is not None and (self.message is not None or self.upstream_status is not None):
            raise ValueError("A successful ChatResult carries no error fields")

    @classmethod
    def success(cls, reply_text: str) -> "ChatResult":
        return cls(reply_text=reply_text)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, upstream_status: Optional[int] = None) -> "ChatResult":
        return cls(error_kind=kind, message=message, upstream_status=upstream_status)

    @property
    def ok(self) -> bool:
        return self.error_kind is None
