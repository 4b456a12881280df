# chat_service/domain/model.py
"""
LLM model value object and the per-model token counters it relies on.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict

import tiktoken

from chat_service.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

TokenCounter = Callable[[str], int]

_counters: Dict[str, TokenCounter] = {}
_counters_lock = threading.Lock()


def register_tokenizer(model_name: str, counter: TokenCounter) -> None:
    """Register (or replace) the token counter used for `model_name`."""
    with _counters_lock:
        _counters[model_name] = counter


def get_token_counter(model_name: str) -> TokenCounter:
    """
    Resolve the token counter for a model name.

    Registered counters win; otherwise tiktoken's model table is consulted.
    Unknown names raise InvalidConfigurationError instead of guessing.
    """
    with _counters_lock:
        counter = _counters.get(model_name)
    if counter is not None:
        return counter

    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except KeyError as e:
        raise InvalidConfigurationError(f"no tokenizer known for model '{model_name}'") from e

    def counter(text: str) -> int:
        return len(encoding.encode(text))

    logger.info(f"Using tiktoken encoding {encoding.name} for model {model_name}")
    register_tokenizer(model_name, counter)
    return counter


@dataclass(frozen=True)
class Model:
    name: str
    max_tokens: int
    _counter: TokenCounter = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.name:
            raise InvalidConfigurationError("model name is required")
        if self.max_tokens <= 0:
            raise InvalidConfigurationError("model max_tokens must be positive")
        object.__setattr__(self, "_counter", get_token_counter(self.name))

    def token_count(self, text: str) -> int:
        return self._counter(text)

    def capacity(self) -> int:
        """Hard context limit of the model."""
        return self.max_tokens
