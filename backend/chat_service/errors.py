# chat_service/errors.py
"""
Error taxonomy for the chat service.

Domain errors are raised by the Chat aggregate and its value objects and are
always recoverable by retrying with different input. Store and provider errors
are surfaced as-is by the completion services, never retried internally.
"""
from __future__ import annotations


class ChatServiceError(Exception):
    """Base class; `code` is the machine-readable error code sent to clients."""

    code = "chat_service_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


# ---- Domain ----
class DomainError(ChatServiceError):
    code = "domain_error"


class InvalidContentError(DomainError):
    code = "invalid_content"


class InvalidConfigurationError(DomainError):
    code = "invalid_configuration"


class BudgetExceededError(DomainError):
    code = "budget_exceeded"


class ChatEndedError(DomainError):
    code = "chat_ended"


class MessageRejectedError(ChatServiceError):
    """A user or assistant message could not be appended to the chat."""

    code = "message_rejected"


# ---- Store ----
class ChatNotFoundError(ChatServiceError):
    code = "chat_not_found"


class SessionLookupError(ChatServiceError):
    code = "session_lookup_failed"


class PersistenceError(ChatServiceError):
    code = "persistence_error"


# ---- Provider ----
class ProviderError(ChatServiceError):
    code = "provider_error"


class ProviderStreamError(ProviderError):
    code = "provider_stream_error"


class CompletionCancelledError(ChatServiceError):
    code = "cancelled"
