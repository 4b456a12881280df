"""
Pydantic schemas for the completion flows.
Aligned with domain.Chat and services.completion_service.
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from .base import BaseSchema


class ChatCompletionConfigurationInput(BaseSchema):
    """
    Configuration applied when a turn creates a new chat.
    Ignored for existing chats, whose configuration is fixed at creation.
    """
    # Message text is kept verbatim; tokens are counted on exactly what was sent
    model_config = ConfigDict(protected_namespaces=(), str_strip_whitespace=False)

    model: str = Field(..., description="Model name, e.g. 'gpt-4o-mini'")
    model_max_tokens: int = Field(..., description="Context capacity of the model")
    temperature: float = Field(1.0, description="0.0..2.0")
    top_p: float = Field(1.0, description="0.0..1.0")
    n: int = Field(1, description="Choices per completion")
    stop: List[str] = Field(default_factory=list, description="Stop sequences")
    max_tokens: int = Field(..., description="Output budget per completion")
    presence_penalty: float = Field(0.0, description="-2.0..2.0")
    frequency_penalty: float = Field(0.0, description="-2.0..2.0")
    initial_system_message: str = Field("", description="System message that primes a new chat")


class ChatCompletionInput(BaseSchema):
    """
    One user turn handed to a completion service.
    """
    model_config = ConfigDict(str_strip_whitespace=False)

    chat_id: Optional[str] = Field(None, description="Existing chat id; a new chat is created when unknown")
    user_id: str = Field(..., description="Owner of the chat")
    user_message: str = Field(..., description="User message text")
    configuration: ChatCompletionConfigurationInput


class ChatCompletionOutput(BaseModel):
    """
    Result of a turn. The streaming flow emits it once per delta with the
    cumulative content so far.
    """
    chat_id: str
    user_id: str
    content: str


class MessageView(BaseModel):
    id: str
    role: Literal["system", "user", "assistant"]
    content: str
    tokens: int
    created_at: datetime


class ChatDetailResponse(BaseModel):
    """
    Stored state of a chat: active window, archive and token usage.
    """
    chat_id: str
    user_id: str
    status: Literal["active", "ended"]
    model: str
    token_usage: int
    messages: List[MessageView]
    erased_messages: List[MessageView]
