"""Chat store interface."""

from typing import Protocol

from chat_service.domain.chat import Chat


class ChatStore(Protocol):
    """
    Port for chat persistence.

    Implementations never keep a reference to a Chat between calls; every
    find_by_id returns a freshly built aggregate.
    """

    def create(self, chat: Chat) -> None:
        """
        Persist a brand-new chat (header + initial system message).

        Args:
            chat: Chat to create
        """
        ...

    def find_by_id(self, chat_id: str) -> Chat:
        """
        Load a chat with its active and erased messages.

        Args:
            chat_id: Chat identifier

        Returns:
            The rebuilt Chat

        Raises:
            ChatNotFoundError: no chat with that id exists
        """
        ...

    def save(self, chat: Chat) -> None:
        """
        Replace the stored header, active messages and erased messages of a
        chat. Must be all-or-nothing.

        Args:
            chat: Chat to save
        """
        ...
