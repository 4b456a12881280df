"""Completion provider interface."""

from typing import Dict, Iterator, List, Protocol, runtime_checkable

from chat_service.domain.configuration import ChatConfiguration


@runtime_checkable
class CompletionProvider(Protocol):
    """Protocol for LLM completions over the active message window."""

    def complete(self, configuration: ChatConfiguration, messages: List[Dict[str, str]]) -> str:
        """Blocking call returning the assistant's full response text."""
        ...

    def stream(self, configuration: ChatConfiguration, messages: List[Dict[str, str]]) -> Iterator[str]:
        """
        Streaming call yielding content deltas in order.

        Exhaustion of the iterator is the end-of-stream signal; failures raise.
        """
        ...
