# Ports implemented by repositories and clients

from .store import ChatStore
from .provider import CompletionProvider

__all__ = ["ChatStore", "CompletionProvider"]
