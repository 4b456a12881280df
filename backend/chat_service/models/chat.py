"""
ChatRecord model: one row per conversation, holding its status, token usage
and the configuration it was created with.
"""
from sqlalchemy import Column, String, Integer, Float, JSON
from .base import BaseModel

class ChatRecord(BaseModel):
    """
    Persisted header of a Chat aggregate.
    """

    __tablename__ = "chats"

    # Owner of the conversation
    user_id = Column(String(255), nullable=False, index=True)

    # Id of the system message that primed the chat
    initial_message_id = Column(String(36), nullable=False)

    # 'active' | 'ended'
    status = Column(String(20), nullable=False, default="active", index=True)

    # Sum of active message tokens at last save
    token_usage = Column(Integer, nullable=False, default=0)

    # Configuration (immutable after creation)
    model = Column(String(80), nullable=False)
    model_max_tokens = Column(Integer, nullable=False)
    temperature = Column(Float, nullable=False)
    top_p = Column(Float, nullable=False)
    n = Column(Integer, nullable=False)
    stop = Column(JSON, nullable=False, default=list)
    max_tokens = Column(Integer, nullable=False)
    presence_penalty = Column(Float, nullable=False)
    frequency_penalty = Column(Float, nullable=False)

    def __repr__(self):
        return f"<ChatRecord(id={self.id}, user_id='{self.user_id}', status='{self.status}', token_usage={self.token_usage})>"
