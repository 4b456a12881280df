# Models package for database entities

from .base import Base, BaseModel
from .chat import ChatRecord
from .message import MessageRecord

# Export all models for easy importing
__all__ = ["Base", "BaseModel", "ChatRecord", "MessageRecord"]
