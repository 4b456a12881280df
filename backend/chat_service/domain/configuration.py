# chat_service/domain/configuration.py
"""
Sampling parameters bound to a Model, fixed for the life of a chat.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from chat_service.domain.model import Model
from chat_service.errors import InvalidConfigurationError


@dataclass(frozen=True)
class ChatConfiguration:
    """
    Options sent with every completion request of a chat.

    Attributes:
        model: Bound model (name + context capacity)
        max_tokens: Output budget reserved for each completion
        temperature: 0.0..2.0, higher is more random
        top_p: 0.0..1.0 nucleus sampling mass
        n: Number of choices requested (only the first is used)
        stop: Stop sequences, may be empty
        presence_penalty: -2.0..2.0, penalises tokens already present
        frequency_penalty: -2.0..2.0, penalises frequent tokens
    """
    model: Optional[Model]
    max_tokens: int
    temperature: float = 1.0
    top_p: float = 1.0
    n: int = 1
    stop: Tuple[str, ...] = ()
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0

    def validate(self) -> None:
        """Raise InvalidConfigurationError when any option is out of range."""
        if self.model is None:
            raise InvalidConfigurationError("configuration has no model")
        if self.max_tokens <= 0:
            raise InvalidConfigurationError("max_tokens must be positive")
        if self.max_tokens >= self.model.capacity():
            raise InvalidConfigurationError(
                f"max_tokens ({self.max_tokens}) leaves no room in the "
                f"{self.model.capacity()}-token context of {self.model.name}"
            )
        if not 0.0 <= self.temperature <= 2.0:
            raise InvalidConfigurationError("temperature must be within [0, 2]")
        if not 0.0 <= self.top_p <= 1.0:
            raise InvalidConfigurationError("top_p must be within [0, 1]")
        if self.n < 1:
            raise InvalidConfigurationError("n must be at least 1")
        for name in ("presence_penalty", "frequency_penalty"):
            if not -2.0 <= getattr(self, name) <= 2.0:
                raise InvalidConfigurationError(f"{name} must be within [-2, 2]")
