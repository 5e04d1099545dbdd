from __future__ import annotations
from typing import List, Optional, Tuple

from chatbridge.core.models import ClientSettings, Message, Role


class ConversationStore:
    """
    In-memory history for the active session.
    - Messages are appended, never edited or removed (reset() starts over)
    - snapshot() is an immutable point-in-time tuple, safe to hand to an in-flight call
    - Provider + credential live here as an explicit ClientSettings object
    Only touched from the session's event loop, so no locking.
    """

    def __init__(self, settings: Optional[ClientSettings] = None):
        self._settings = settings
        self._messages: List[Message] = []

    @property
    def settings(self) -> Optional[ClientSettings]:
        return self._settings

    def update_settings(self, settings: ClientSettings) -> None:
        self._settings = settings

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def append_message(self, role: Role, content: str) -> Message:
        msg = Message(role=role, content=content)
        self.append(msg)
        return msg

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def reset(self) -> None:
        self._messages = []

    def __len__(self) -> int:
        return len(self._messages)
