# chat_service/services/stream_completion_service.py
"""
Streaming completion flow: same turn as the blocking flow, but the reply is
pushed to a sink as it arrives, each emission carrying the whole reply so far.
"""
from __future__ import annotations
from typing import Callable, Iterator, Optional
import logging
import threading

from chat_service.domain import Chat
from chat_service.errors import ProviderStreamError
from chat_service.schemas.chat import ChatCompletionInput, ChatCompletionOutput
from chat_service.services.completion_service import CompletionServiceBase

logger = logging.getLogger(__name__)

Sink = Callable[[ChatCompletionOutput], None]


class ChatCompletionStreamService(CompletionServiceBase):
    """
    Entry point for POST /chat/stream.

    Nothing is appended or saved until the provider stream has finished, so a
    failed or cancelled stream leaves the stored chat exactly as it was
    (apart from the chat row itself when this turn created it).
    """

    def execute(
        self,
        input: ChatCompletionInput,
        sink: Sink,
        cancel_event: Optional[threading.Event] = None,
    ) -> ChatCompletionOutput:
        with self.locks.hold(input.chat_id):
            chat = self._resolve_chat(input)
            self._append(chat, "user", input.user_message)
            self._check_cancelled(cancel_event, chat)

            content = self._consume(chat, input.user_id, sink, cancel_event)

            self._append(chat, "assistant", content)
            self._persist(chat)

        logger.info(f"Streamed reply for chat {chat.id}: {len(content)} chars")
        return ChatCompletionOutput(chat_id=chat.id, user_id=input.user_id, content=content)

    def _consume(
        self,
        chat: Chat,
        user_id: str,
        sink: Sink,
        cancel_event: Optional[threading.Event],
    ) -> str:
        """Drain the provider stream into `sink`; returns the full reply."""
        try:
            deltas: Iterator[str] = iter(self.provider.stream(chat.configuration, self._project(chat)))
        except Exception as e:
            logger.error(f"Provider stream failed to open (chat={chat.id}): {e}")
            raise ProviderStreamError(f"error opening provider stream: {e}") from e

        content = ""
        try:
            while True:
                self._check_cancelled(cancel_event, chat)
                try:
                    delta = next(deltas)
                except StopIteration:
                    break
                except Exception as e:
                    logger.error(f"Provider stream broke after {len(content)} chars (chat={chat.id}): {e}")
                    raise ProviderStreamError(f"error receiving from provider stream: {e}") from e

                content += delta
                sink(ChatCompletionOutput(chat_id=chat.id, user_id=user_id, content=content))
        finally:
            close = getattr(deltas, "close", None)
            if callable(close):
                close()
        return content
