from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Optional

from .errors import ErrorKind, SettingsRequiredError
from .models import ChatRequest, ChatResult, Message
from .ports import ChatBackend
from chatbridge.storage.conversation import ConversationStore

# Upstream statuses that plausibly mean "your key is wrong"
_CREDENTIAL_STATUSES = (401, 403)


@dataclass(frozen=True)
class TurnOutcome:
    result: ChatResult
    reply: Message
    needs_settings: bool = False


def needs_settings(result: ChatResult) -> bool:
    return (
        result.error_kind is ErrorKind.UPSTREAM_ERROR
        and result.upstream_status in _CREDENTIAL_STATUSES
    )


class ChatSession:
    """
    Client-side turn controller.

    One turn may be in flight at a time. Starting a new turn cancels the previous
    one; a cancelled turn's late reply is discarded and nothing is appended for it.
    """

    def __init__(self, backend: ChatBackend, store: ConversationStore):
        self.backend = backend
        self.store = store
        self._inflight: Optional[asyncio.Future] = None
        self._generation = 0

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def send(self, user_text: str) -> TurnOutcome:
        if not user_text or not user_text.strip():
            raise ValueError("Empty message")
        settings = self.store.settings
        if settings is None or not settings.credential:
            raise SettingsRequiredError("Please configure your API key in settings first")

        await self.cancel()

        self.store.append_message("user", user_text)
        request = ChatRequest(
            provider_id=settings.provider_id,
            credential=settings.credential,
            history=self.store.snapshot(),
        )

        self._generation += 1
        generation = self._generation
        task = asyncio.ensure_future(self.backend.handle(request))
        self._inflight = task
        try:
            result = await task
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation:
            # Superseded after the reply landed but before we resumed
            raise asyncio.CancelledError()

        if result.ok:
            reply = self.store.append_message("assistant", result.reply_text)
            return TurnOutcome(result=result, reply=reply)

        hint = needs_settings(result)
        text = f"Error: {result.message}"
        if hint:
            text = f"{text.rstrip('.')}. Please check your API key in settings."
        reply = self.store.append_message("assistant", text)
        return TurnOutcome(result=result, reply=reply, needs_settings=hint)

    async def cancel(self) -> bool:
        """Cancel the in-flight turn, if any. Returns True if one was cancelled."""
        task = self._inflight
        self._generation += 1
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True
