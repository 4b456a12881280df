"""
Shared pytest configuration and fixtures.

Token counting in tests is one token per whitespace-separated word, registered
for the model names used below so tiktoken never has to load an encoding.
"""

import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend/ is importable for test modules.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from chat_service.domain import ChatConfiguration, Model, new_chat, new_message, register_tokenizer  # noqa: E402
from chat_service.models import Base  # noqa: E402
from chat_service.repositories import InMemoryChatRepository  # noqa: E402
from chat_service.schemas.chat import ChatCompletionConfigurationInput, ChatCompletionInput  # noqa: E402
from chat_service.services.locks import ChatLocks  # noqa: E402

TEST_MODELS = ("m", "test-model")


def word_count(text: str) -> int:
    return len(text.split())


for _name in TEST_MODELS:
    register_tokenizer(_name, word_count)


# === Domain fixtures ===
@pytest.fixture
def small_model() -> Model:
    """Capacity 30 so a handful of turns overflows the budget."""
    return Model("test-model", 30)


@pytest.fixture
def small_configuration(small_model) -> ChatConfiguration:
    return ChatConfiguration(model=small_model, max_tokens=10)


@pytest.fixture
def chat(small_configuration):
    system = new_message("system", "You are helpful.", small_configuration.model)
    return new_chat("u1", system, small_configuration)


def make_input(message: str = "hello", chat_id: Optional[str] = None, **config) -> ChatCompletionInput:
    options = {
        "model": "m",
        "model_max_tokens": 4096,
        "max_tokens": 50,
        "initial_system_message": "You are helpful.",
    }
    options.update(config)
    return ChatCompletionInput(
        chat_id=chat_id,
        user_id="u1",
        user_message=message,
        configuration=ChatCompletionConfigurationInput(**options),
    )


# === Fakes ===
class FakeProvider:
    """Completion provider returning canned text, recording every request."""

    def __init__(self, reply: str = "Hi there!", deltas: Optional[List[str]] = None,
                 fail_after: Optional[int] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.deltas = deltas if deltas is not None else ["Hi", " there", "!"]
        self.fail_after = fail_after
        self.error = error
        self.requests: List[List[Dict[str, str]]] = []
        self.closed = False

    def complete(self, configuration, messages):
        self.requests.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply

    def stream(self, configuration, messages) -> Iterator[str]:
        self.requests.append(list(messages))
        try:
            for i, delta in enumerate(self.deltas):
                if self.fail_after is not None and i == self.fail_after:
                    raise self.error or RuntimeError("connection reset")
                yield delta
        finally:
            self.closed = True


class SpyStore(InMemoryChatRepository):
    """In-memory store that counts calls and can be told to fail."""

    def __init__(self, find_error: Optional[Exception] = None, save_error: Optional[Exception] = None,
                 create_error: Optional[Exception] = None):
        super().__init__()
        self.find_error = find_error
        self.save_error = save_error
        self.create_error = create_error
        self.calls: List[str] = []

    def create(self, chat):
        self.calls.append("create")
        if self.create_error is not None:
            raise self.create_error
        super().create(chat)

    def find_by_id(self, chat_id):
        self.calls.append("find_by_id")
        if self.find_error is not None:
            raise self.find_error
        return super().find_by_id(chat_id)

    def save(self, chat):
        self.calls.append("save")
        if self.save_error is not None:
            raise self.save_error
        super().save(chat)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def store() -> SpyStore:
    return SpyStore()


@pytest.fixture
def locks() -> ChatLocks:
    return ChatLocks()


# === Database fixtures ===
@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test, shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, future=True)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


