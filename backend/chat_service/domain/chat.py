# chat_service/domain/chat.py
"""
Chat aggregate: the active message window, the erased-message archive and the
token budget that decides which messages stay active.

Budget invariant, checked after every mutation:
    token_usage == sum(m.tokens for m in messages)
    token_usage + configuration.max_tokens <= configuration.model.capacity()
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from chat_service.domain.configuration import ChatConfiguration
from chat_service.domain.message import Message
from chat_service.errors import (
    BudgetExceededError,
    ChatEndedError,
    InvalidConfigurationError,
)

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_ENDED = "ended"


@dataclass
class Chat:
    user_id: str
    initial_system_message: Message
    configuration: ChatConfiguration
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: str = STATUS_ACTIVE
    messages: List[Message] = field(default_factory=list)
    erased_messages: List[Message] = field(default_factory=list)
    token_usage: int = 0

    @property
    def is_ended(self) -> bool:
        return self.status == STATUS_ENDED

    def add_message(self, message: Message) -> None:
        """
        Append a message, evicting the oldest non-system messages into the
        archive until the budget fits again.

        If evicting every older non-system message is still not enough, raises
        BudgetExceededError and leaves the chat untouched.
        """
        if self.is_ended:
            raise ChatEndedError(f"chat {self.id} is ended, no more messages allowed")

        limit = self.configuration.model.capacity() - self.configuration.max_tokens
        window = self.messages + [message]
        usage = self.token_usage + message.tokens
        evicted: List[Message] = []

        while usage > limit:
            idx = self._oldest_evictable(window)
            if idx is None:
                raise BudgetExceededError(
                    f"message of {message.tokens} tokens does not fit: "
                    f"{usage} active + {self.configuration.max_tokens} reserved > "
                    f"{self.configuration.model.capacity()}"
                )
            oldest = window.pop(idx)
            usage -= oldest.tokens
            evicted.append(oldest)

        self.messages = window
        self.erased_messages.extend(evicted)
        self.token_usage = usage
        if evicted:
            logger.info(f"Chat {self.id}: erased {len(evicted)} message(s), token_usage={usage}")

    @staticmethod
    def _oldest_evictable(window: List[Message]) -> Optional[int]:
        # The last entry is the message being added and is never evicted.
        for i, m in enumerate(window[:-1]):
            if not m.is_system_message:
                return i
        return None

    def end(self) -> None:
        self.status = STATUS_ENDED

    def count_messages(self) -> int:
        return len(self.messages)


def new_chat(
    user_id: str,
    initial_system_message: Message,
    configuration: ChatConfiguration,
    *,
    chat_id: Optional[str] = None,
) -> Chat:
    """Create a chat whose active window is exactly [initial_system_message]."""
    if configuration is None:
        raise InvalidConfigurationError("configuration is required")
    configuration.validate()
    if not initial_system_message.is_system_message:
        raise InvalidConfigurationError("the initial message of a chat must be a system message")

    chat = Chat(
        user_id=user_id,
        initial_system_message=initial_system_message,
        configuration=configuration,
    )
    if chat_id:
        chat.id = chat_id
    chat.add_message(initial_system_message)
    return chat
