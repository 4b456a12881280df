# chat_service/routers/chats.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from chat_service.domain import Chat, Message
from chat_service.errors import ChatServiceError
from chat_service.interfaces import ChatStore
from chat_service.routers.chat import get_chat_store, http_error, require_auth
from chat_service.schemas.chat import ChatDetailResponse, MessageView
from chat_service.services.completion_service import ChatCompletionService

router = APIRouter(prefix="/chats", tags=["chats"])


# ------- DI providers -------
def get_chat_service(store: ChatStore = Depends(get_chat_store)) -> ChatCompletionService:
    # No provider: reading and ending a chat never calls the LLM
    return ChatCompletionService(store=store)


def _view(m: Message) -> MessageView:
    return MessageView(id=m.id, role=m.role, content=m.content, tokens=m.tokens, created_at=m.created_at)


def _detail(chat: Chat) -> ChatDetailResponse:
    return ChatDetailResponse(
        chat_id=chat.id,
        user_id=chat.user_id,
        status=chat.status,
        model=chat.configuration.model.name,
        token_usage=chat.token_usage,
        messages=[_view(m) for m in chat.messages],
        erased_messages=[_view(m) for m in chat.erased_messages],
    )


@router.get("/{chat_id}", response_model=ChatDetailResponse, summary="Get a chat with its active and erased messages")
def get_chat(
    chat_id: str,
    _: None = Depends(require_auth),
    service: ChatCompletionService = Depends(get_chat_service),
):
    try:
        return _detail(service.get_chat(chat_id))
    except ChatServiceError as e:
        raise http_error(e)


@router.post("/{chat_id}/end", status_code=status.HTTP_204_NO_CONTENT, summary="End a chat")
def end_chat(
    chat_id: str,
    _: None = Depends(require_auth),
    service: ChatCompletionService = Depends(get_chat_service),
):
    try:
        service.end_chat(chat_id)
    except ChatServiceError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
