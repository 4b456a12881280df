"""
Process-local chat store. Used for development (CHAT_STORE=memory) and tests.
"""

import copy
import logging
import threading
from typing import Dict

from ..domain import Chat
from ..errors import ChatNotFoundError

logger = logging.getLogger(__name__)


class InMemoryChatRepository:
    """Chat store backed by a dict; hands out deep copies, never shared references."""

    def __init__(self):
        self._chats: Dict[str, Chat] = {}
        self._lock = threading.Lock()

    def create(self, chat: Chat) -> None:
        with self._lock:
            if chat.id in self._chats:
                raise ValueError(f"chat {chat.id} already exists")
            self._chats[chat.id] = copy.deepcopy(chat)
        logger.info(f"Created chat {chat.id} for user {chat.user_id}")

    def find_by_id(self, chat_id: str) -> Chat:
        with self._lock:
            chat = self._chats.get(chat_id)
            if chat is None:
                raise ChatNotFoundError(f"chat {chat_id} not found")
            return copy.deepcopy(chat)

    def save(self, chat: Chat) -> None:
        with self._lock:
            if chat.id not in self._chats:
                raise ChatNotFoundError(f"chat {chat.id} not found")
            self._chats[chat.id] = copy.deepcopy(chat)
