# chat_service/services/completion_service.py
"""
Blocking completion flow and the turn steps it shares with the streaming flow.
"""
from __future__ import annotations
from typing import Dict, List, Optional
import logging
import threading

from chat_service.clients.llm_client import LLMClient
from chat_service.domain import Chat, ChatConfiguration, Model, new_chat, new_message
from chat_service.errors import (
    BudgetExceededError,
    ChatNotFoundError,
    CompletionCancelledError,
    DomainError,
    InvalidConfigurationError,
    InvalidContentError,
    MessageRejectedError,
    PersistenceError,
    ProviderError,
    SessionLookupError,
)
from chat_service.interfaces import ChatStore, CompletionProvider
from chat_service.repositories.chat import ChatRepository
from chat_service.schemas.chat import ChatCompletionInput, ChatCompletionOutput
from chat_service.services.locks import ChatLocks, chat_locks

logger = logging.getLogger(__name__)


class CompletionServiceBase:
    """
    Steps common to both completion flows: resolve the chat, append messages
    under the token budget, project the active window, persist.
    """

    def __init__(
        self,
        *,
        store: Optional[ChatStore] = None,
        provider: Optional[CompletionProvider] = None,
        locks: Optional[ChatLocks] = None,
    ):
        self.store = store or ChatRepository()
        self._provider = provider
        self.locks = locks or chat_locks

    @property
    def provider(self) -> CompletionProvider:
        # Built on first use; get_chat/end_chat never need an API key
        if self._provider is None:
            self._provider = LLMClient()
        return self._provider

    # ---------- chat lifecycle ----------

    def _create_chat(self, input: ChatCompletionInput) -> Chat:
        cfg = input.configuration
        model = Model(cfg.model, cfg.model_max_tokens)
        configuration = ChatConfiguration(
            model=model,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            n=cfg.n,
            stop=tuple(cfg.stop),
            presence_penalty=cfg.presence_penalty,
            frequency_penalty=cfg.frequency_penalty,
        )
        try:
            initial = new_message("system", cfg.initial_system_message, model)
            return new_chat(input.user_id, initial, configuration, chat_id=input.chat_id)
        except (InvalidContentError, BudgetExceededError) as e:
            raise InvalidConfigurationError(f"initial system message: {e.message}") from e

    def _load_chat(self, chat_id: str) -> Chat:
        """find_by_id with store failures mapped; ChatNotFoundError passes through."""
        try:
            return self.store.find_by_id(chat_id)
        except ChatNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Chat lookup failed (chat={chat_id}): {e}")
            raise SessionLookupError(f"error fetching chat {chat_id}: {e}") from e

    def _resolve_chat(self, input: ChatCompletionInput) -> Chat:
        """Load the chat named by the input, or create and persist a new one."""
        if input.chat_id:
            try:
                return self._load_chat(input.chat_id)
            except ChatNotFoundError:
                logger.info(f"Chat {input.chat_id} not found, starting a new one")

        chat = self._create_chat(input)
        try:
            self.store.create(chat)
        except Exception as e:
            logger.error(f"Persisting new chat failed (chat={chat.id}): {e}")
            raise PersistenceError(f"error persisting new chat {chat.id}: {e}") from e
        return chat

    # ---------- turn steps ----------

    @staticmethod
    def _append(chat: Chat, role: str, content: str) -> None:
        try:
            chat.add_message(new_message(role, content, chat.configuration.model))
        except DomainError as e:
            raise MessageRejectedError(f"{role} message rejected: {e.message}") from e

    @staticmethod
    def _project(chat: Chat) -> List[Dict[str, str]]:
        """Active window in provider request shape. Erased messages are never sent."""
        return [{"role": m.role, "content": m.content} for m in chat.messages]

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], chat: Chat) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Turn cancelled (chat={chat.id}), nothing persisted")
            raise CompletionCancelledError(f"turn on chat {chat.id} was cancelled")

    def _persist(self, chat: Chat) -> None:
        try:
            self.store.save(chat)
        except Exception as e:
            logger.error(f"Saving chat failed (chat={chat.id}): {e}")
            raise PersistenceError(f"error saving chat {chat.id}: {e}") from e

    # ---------- chat management ----------

    def get_chat(self, chat_id: str) -> Chat:
        return self._load_chat(chat_id)

    def end_chat(self, chat_id: str) -> Chat:
        """Mark a chat as ended; further turns are rejected."""
        with self.locks.hold(chat_id):
            chat = self._load_chat(chat_id)
            chat.end()
            self._persist(chat)
        logger.info(f"Chat {chat_id} ended")
        return chat


class ChatCompletionService(CompletionServiceBase):
    """
    Entry point for POST /chat.

    One turn:
    - Load the chat, or create it on the first turn
    - Append the user message (old messages may be erased to fit the budget)
    - Ask the provider for the full reply (no internal retry)
    - Append the reply and save the whole chat
    """

    def execute(
        self,
        input: ChatCompletionInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> ChatCompletionOutput:
        with self.locks.hold(input.chat_id):
            chat = self._resolve_chat(input)
            self._append(chat, "user", input.user_message)
            self._check_cancelled(cancel_event, chat)

            try:
                content = self.provider.complete(chat.configuration, self._project(chat))
            except ProviderError as e:
                logger.error(f"Provider failed (chat={chat.id}): {e}")
                raise
            except Exception as e:
                logger.error(f"Provider failed (chat={chat.id}): {e}")
                raise ProviderError(f"error from provider: {e}") from e

            self._check_cancelled(cancel_event, chat)
            self._append(chat, "assistant", content)
            self._persist(chat)

        return ChatCompletionOutput(chat_id=chat.id, user_id=input.user_id, content=content)
