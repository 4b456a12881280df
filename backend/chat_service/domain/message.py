# chat_service/domain/message.py
"""
A single conversation turn.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from chat_service.domain.model import Model
from chat_service.errors import InvalidContentError

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """
    Immutable message owned by a Chat.

    Attributes:
        id: Unique identifier (uuid4 string)
        role: 'system' | 'user' | 'assistant'
        content: Message text
        tokens: Token count of `content` under `model`
        model: Model whose tokenizer produced `tokens`
        created_at: UTC creation time
    """
    role: str
    content: str
    tokens: int
    model: Model
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_system_message(self) -> bool:
        return self.role == "system"


def new_message(role: str, content: str, model: Model) -> Message:
    """Create a message, counting its tokens with the model's tokenizer."""
    if role not in ROLES:
        raise InvalidContentError(f"invalid role '{role}'")
    if not content or not content.strip():
        raise InvalidContentError("message content is empty")
    return Message(role=role, content=content, tokens=model.token_count(content), model=model)
