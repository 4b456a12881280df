# chat_service/services/locks.py
"""
Per-chat single-writer locks for the load -> modify -> save cycle.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class ChatLocks:
    """
    One lock per chat id, created on demand and dropped when nobody holds or
    waits for it. Turns on different chats never contend.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, chat_id: Optional[str]) -> Iterator[None]:
        # A turn without an id creates a fresh chat; nothing to serialise.
        if not chat_id:
            yield
            return

        with self._guard:
            lock = self._locks.setdefault(chat_id, threading.Lock())
            self._waiters[chat_id] = self._waiters.get(chat_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[chat_id] -= 1
                if not self._waiters[chat_id]:
                    del self._waiters[chat_id]
                    del self._locks[chat_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by the blocking and streaming services so both serialise on the same chat
chat_locks = ChatLocks()
