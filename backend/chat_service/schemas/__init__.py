# Schemas package for API request/response validation

# Base schemas
from .base import BaseSchema

# Common data structures
from .common import ErrorResponse

# Chat schemas
from .chat import (
    ChatCompletionConfigurationInput, ChatCompletionInput, ChatCompletionOutput,
    MessageView, ChatDetailResponse,
)

# Export all schemas for easy importing
__all__ = [
    # Base
    "BaseSchema",

    # Common
    "ErrorResponse",

    # Chat
    "ChatCompletionConfigurationInput", "ChatCompletionInput", "ChatCompletionOutput",
    "MessageView", "ChatDetailResponse",
]
