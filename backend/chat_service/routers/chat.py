# chat_service/routers/chat.py
from __future__ import annotations
from typing import Iterator, Optional
import logging
import queue
import threading

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from chat_service.clients.llm_client import LLMClient
from chat_service.config import settings
from chat_service.errors import (
    ChatNotFoundError,
    ChatServiceError,
    CompletionCancelledError,
    InvalidConfigurationError,
    MessageRejectedError,
    ProviderError,
)
from chat_service.interfaces import ChatStore, CompletionProvider
from chat_service.repositories import ChatRepository, InMemoryChatRepository
from chat_service.schemas.chat import (
    ChatCompletionConfigurationInput,
    ChatCompletionInput,
    ChatCompletionOutput,
)
from chat_service.schemas.common import ErrorResponse
from chat_service.services.completion_service import ChatCompletionService
from chat_service.services.stream_completion_service import ChatCompletionStreamService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# ------- DI providers -------
_memory_store: Optional[InMemoryChatRepository] = None


def get_chat_store() -> ChatStore:
    global _memory_store
    if settings.CHAT_STORE == "memory":
        if _memory_store is None:
            _memory_store = InMemoryChatRepository()
        return _memory_store
    return ChatRepository()


def get_llm_client() -> CompletionProvider:
    return LLMClient()


def get_completion_service(
    store: ChatStore = Depends(get_chat_store),
    provider: CompletionProvider = Depends(get_llm_client),
) -> ChatCompletionService:
    return ChatCompletionService(store=store, provider=provider)


def get_stream_service(
    store: ChatStore = Depends(get_chat_store),
    provider: CompletionProvider = Depends(get_llm_client),
) -> ChatCompletionStreamService:
    return ChatCompletionStreamService(store=store, provider=provider)


def require_auth(authorization: Optional[str] = Header(None)) -> None:
    """Shared-token check; disabled when AUTH_TOKEN is empty."""
    if not settings.AUTH_TOKEN:
        return
    token = (authorization or "").removeprefix("Bearer ").strip()
    if token != settings.AUTH_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing token")


# ------- Error mapping -------
def status_for(error: ChatServiceError) -> int:
    if isinstance(error, (MessageRejectedError, InvalidConfigurationError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ChatNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ProviderError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(error, CompletionCancelledError):
        return 499  # client closed request
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(error: ChatServiceError) -> HTTPException:
    return HTTPException(
        status_code=status_for(error),
        detail=ErrorResponse.from_error(error).model_dump(mode="json"),
    )


# ------- Request shape -------
class ChatRequest(BaseModel):
    chat_id: Optional[str] = Field(None, description="Existing chat id; omit to start a new chat")
    user_id: str = Field(..., min_length=1, description="Owner of the chat")
    message: str = Field(..., min_length=1, description="User message text")


def configuration_from_settings() -> ChatCompletionConfigurationInput:
    """Every chat created through the API uses the server-side configuration."""
    return ChatCompletionConfigurationInput(
        model=settings.OPENAI_MODEL,
        model_max_tokens=settings.MODEL_MAX_TOKENS,
        temperature=settings.TEMPERATURE,
        top_p=settings.TOP_P,
        n=settings.N,
        stop=settings.STOP,
        max_tokens=settings.MAX_TOKENS,
        presence_penalty=settings.PRESENCE_PENALTY,
        frequency_penalty=settings.FREQUENCY_PENALTY,
        initial_system_message=settings.INITIAL_SYSTEM_MESSAGE,
    )


def _to_input(payload: ChatRequest) -> ChatCompletionInput:
    return ChatCompletionInput(
        chat_id=payload.chat_id,
        user_id=payload.user_id,
        user_message=payload.message,
        configuration=configuration_from_settings(),
    )


# ------- Routes -------
@router.post("", response_model=ChatCompletionOutput, summary="Send a message and wait for the full reply")
def chat(
    payload: ChatRequest,
    _: None = Depends(require_auth),
    service: ChatCompletionService = Depends(get_completion_service),
):
    try:
        return service.execute(_to_input(payload))
    except ChatServiceError as e:
        raise http_error(e)


_STREAM_END = object()


def start_stream(
    service: ChatCompletionStreamService,
    input: ChatCompletionInput,
    events: "queue.Queue[object]",
    cancel: threading.Event,
) -> threading.Thread:
    """
    Run one streaming turn on a worker thread. Every emission, then the error
    if any, then _STREAM_END is put on `events`.
    """
    def run() -> None:
        try:
            service.execute(input, sink=events.put, cancel_event=cancel)
        except ChatServiceError as e:
            events.put(e)
        except Exception as e:
            logger.exception(f"Streaming turn crashed: {e}")
            events.put(ChatServiceError(f"internal error: {e}"))
        finally:
            events.put(_STREAM_END)

    worker = threading.Thread(target=run, name="chat-stream", daemon=True)
    worker.start()
    return worker


def ndjson_lines(first: object, events: "queue.Queue[object]", cancel: threading.Event) -> Iterator[str]:
    item = first
    try:
        while item is not _STREAM_END:
            if isinstance(item, ChatServiceError):
                yield ErrorResponse.from_error(item).model_dump_json() + "\n"
            else:
                yield item.model_dump_json() + "\n"
            item = events.get()
    finally:
        # No-op once the turn has finished; stops it on client disconnect
        cancel.set()


@router.post("/stream", summary="Send a message and stream the reply as NDJSON")
def chat_stream(
    payload: ChatRequest,
    _: None = Depends(require_auth),
    service: ChatCompletionStreamService = Depends(get_stream_service),
):
    """
    Each line is a ChatCompletionOutput holding the reply so far.
    Errors before the first line map to an HTTP status; errors after it end
    the stream with one ErrorResponse line.
    """
    events: "queue.Queue[object]" = queue.Queue()
    cancel = threading.Event()
    start_stream(service, _to_input(payload), events, cancel)

    try:
        first = events.get()
    except BaseException:
        cancel.set()
        raise
    if isinstance(first, ChatServiceError):
        cancel.set()
        raise http_error(first)

    return StreamingResponse(ndjson_lines(first, events, cancel), media_type="application/x-ndjson")
