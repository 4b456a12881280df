# Repositories package for data access layer

# Base repository
from .base import BaseRepository

# Chat stores
from .chat import ChatRepository
from .memory import InMemoryChatRepository

__all__ = [
    "BaseRepository",
    "ChatRepository",
    "InMemoryChatRepository",
]
