# Domain package: the conversation aggregate and its value objects

from .model import Model, register_tokenizer, get_token_counter
from .message import Message, new_message
from .configuration import ChatConfiguration
from .chat import Chat, new_chat, STATUS_ACTIVE, STATUS_ENDED

__all__ = [
    "Model", "register_tokenizer", "get_token_counter",
    "Message", "new_message",
    "ChatConfiguration",
    "Chat", "new_chat", "STATUS_ACTIVE", "STATUS_ENDED",
]
