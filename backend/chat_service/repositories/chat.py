"""
Chat repository: SQLAlchemy implementation of the chat store.
Maps the Chat aggregate to a `chats` header row plus `messages` rows.
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from .base import BaseRepository
from ..domain import Chat, ChatConfiguration, Message, Model
from ..errors import ChatNotFoundError
from ..models.chat import ChatRecord
from ..models.message import MessageRecord

logger = logging.getLogger(__name__)


class ChatRepository(BaseRepository[ChatRecord]):
    """
    Repository for chat persistence.
    Implements create / find_by_id / save (replace-all) for the completion services.
    """

    def __init__(self, session_factory=None):
        super().__init__(ChatRecord, session_factory)

    # ---------- Helpers (internal) ----------

    @staticmethod
    def _header_fields(chat: Chat) -> Dict[str, Any]:
        cfg = chat.configuration
        return {
            "user_id": chat.user_id,
            "initial_message_id": chat.initial_system_message.id,
            "status": chat.status,
            "token_usage": chat.token_usage,
            "model": cfg.model.name,
            "model_max_tokens": cfg.model.max_tokens,
            "temperature": cfg.temperature,
            "top_p": cfg.top_p,
            "n": cfg.n,
            "stop": list(cfg.stop),
            "max_tokens": cfg.max_tokens,
            "presence_penalty": cfg.presence_penalty,
            "frequency_penalty": cfg.frequency_penalty,
        }

    @staticmethod
    def _message_rows(chat: Chat) -> List[MessageRecord]:
        """Active messages then erased messages, each numbered from 0."""
        rows: List[MessageRecord] = []
        for erased, messages in ((False, chat.messages), (True, chat.erased_messages)):
            for i, m in enumerate(messages):
                rows.append(MessageRecord(
                    id=m.id,
                    chat_id=chat.id,
                    role=m.role,
                    content=m.content,
                    tokens=m.tokens,
                    model=chat.configuration.model.name,
                    order_msg=i,
                    erased=erased,
                    created_at=m.created_at,
                ))
        return rows

    @staticmethod
    def _to_domain(record: ChatRecord, rows: List[MessageRecord]) -> Chat:
        model = Model(record.model, record.model_max_tokens)
        configuration = ChatConfiguration(
            model=model,
            max_tokens=record.max_tokens,
            temperature=record.temperature,
            top_p=record.top_p,
            n=record.n,
            stop=tuple(record.stop or ()),
            presence_penalty=record.presence_penalty,
            frequency_penalty=record.frequency_penalty,
        )

        active: List[Message] = []
        erased: List[Message] = []
        for row in rows:
            msg = Message(
                id=row.id,
                role=row.role,
                content=row.content,
                tokens=row.tokens,
                model=model,
                created_at=row.created_at,
            )
            (erased if row.erased else active).append(msg)

        initial = next((m for m in active if m.id == record.initial_message_id), None)
        return Chat(
            id=record.id,
            user_id=record.user_id,
            initial_system_message=initial or active[0],
            configuration=configuration,
            status=record.status,
            messages=active,
            erased_messages=erased,
            token_usage=record.token_usage,
        )

    def _load_rows(self, db: Session, chat_id: str) -> List[MessageRecord]:
        return (
            db.query(MessageRecord)
            .filter(MessageRecord.chat_id == chat_id)
            .order_by(MessageRecord.erased, MessageRecord.order_msg)
            .all()
        )

    # ---------- Store operations ----------

    def create(self, chat: Chat) -> None:
        """Insert the chat header and its current messages."""
        try:
            with self._session() as db:
                db.add(ChatRecord(id=chat.id, **self._header_fields(chat)))
                db.flush()
                db.add_all(self._message_rows(chat))
            logger.info(f"Created chat {chat.id} for user {chat.user_id}")
        except Exception as e:
            logger.error(f"Error creating chat {chat.id}: {e}")
            raise

    def find_by_id(self, chat_id: str) -> Chat:
        """Rebuild a Chat from its header and message rows."""
        chat: Optional[Chat] = None
        try:
            with self._session() as db:
                record = self.get(db, chat_id)
                if record is not None:
                    chat = self._to_domain(record, self._load_rows(db, chat_id))
        except Exception as e:
            logger.error(f"Error loading chat {chat_id}: {e}")
            raise
        if chat is None:
            raise ChatNotFoundError(f"chat {chat_id} not found")
        return chat

    def save(self, chat: Chat) -> None:
        """
        Replace header, active and erased messages in one transaction.
        Either every statement commits or none does.
        """
        try:
            with self._session() as db:
                record = self.get(db, chat.id)
                if record is None:
                    raise ChatNotFoundError(f"chat {chat.id} not found")
                for field, value in self._header_fields(chat).items():
                    setattr(record, field, value)

                db.query(MessageRecord).filter(MessageRecord.chat_id == chat.id).delete(synchronize_session=False)
                db.add_all(self._message_rows(chat))
            logger.info(
                f"Saved chat {chat.id}: {len(chat.messages)} active, "
                f"{len(chat.erased_messages)} erased, token_usage={chat.token_usage}"
            )
        except Exception as e:
            logger.error(f"Error saving chat {chat.id}: {e}")
            raise
