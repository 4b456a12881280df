"""
MessageRecord model for storing the messages of a chat.
Active and erased messages share the table; `erased` tells them apart and
`order_msg` keeps each set in its original order.
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, Boolean
from .base import BaseModel

class MessageRecord(BaseModel):
    """
    Message entity that represents a single turn of a chat.
    """

    __tablename__ = "messages"

    # Foreign key to the chat this message belongs to
    chat_id = Column(String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)

    # 'system' | 'user' | 'assistant'
    role = Column(String(20), nullable=False)

    # The actual message content
    content = Column(Text, nullable=False)

    # Token count under `model`'s tokenizer
    tokens = Column(Integer, nullable=False)
    model = Column(String(80), nullable=False)

    # Position within the active window or within the archive
    order_msg = Column(Integer, nullable=False)

    # True once evicted from the active window
    erased = Column(Boolean, default=False, nullable=False, index=True)

    def __repr__(self):
        return f"<MessageRecord(id={self.id}, role='{self.role}', chat_id={self.chat_id}, erased={self.erased})>"
