# chat_service/clients/llm_client.py
"""
OpenAI API client wrapper used as the completion provider.
Handles blocking and streamed chat completions with latency logging.
"""
from __future__ import annotations
from typing import Any, Dict, Iterator, List, Optional
import logging
import time

from openai import OpenAI, OpenAIError

from chat_service.config import settings
from chat_service.domain.configuration import ChatConfiguration
from chat_service.errors import ProviderError

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(self, client: Optional[OpenAI] = None):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise RuntimeError("OPENAI_API_KEY is not set")
            client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT_S)
        self.client = client

    @staticmethod
    def _request(configuration: ChatConfiguration, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        """Map a chat configuration onto chat.completions.create kwargs."""
        return {
            "model": configuration.model.name,
            "messages": messages,
            "max_tokens": configuration.max_tokens,
            "temperature": configuration.temperature,
            "top_p": configuration.top_p,
            "n": configuration.n,
            "presence_penalty": configuration.presence_penalty,
            "frequency_penalty": configuration.frequency_penalty,
            "stop": list(configuration.stop) or None,
        }

    def complete(self, configuration: ChatConfiguration, messages: List[Dict[str, str]]) -> str:
        """
        Returns the text of the first choice.
        """
        started = time.time()
        try:
            resp = self.client.chat.completions.create(**self._request(configuration, messages))
        except OpenAIError as e:
            raise ProviderError(f"openai: {e}") from e

        if not resp.choices:
            raise ProviderError("openai: response has no choices")
        txt = resp.choices[0].message.content or ""
        usage = getattr(resp, "usage", None)
        logger.info(
            f"completion model={configuration.model.name} "
            f"tokens_in={getattr(usage, 'prompt_tokens', None)} "
            f"tokens_out={getattr(usage, 'completion_tokens', None)} "
            f"latency_ms={(time.time() - started) * 1000.0:.1f}"
        )
        return txt

    def stream(self, configuration: ChatConfiguration, messages: List[Dict[str, str]]) -> Iterator[str]:
        """
        Yields content deltas of the first choice as they arrive.
        Chunks without content (role headers, finish markers) are skipped.
        """
        started = time.time()
        try:
            resp = self.client.chat.completions.create(stream=True, **self._request(configuration, messages))
        except OpenAIError as e:
            raise ProviderError(f"openai: {e}") from e

        try:
            for chunk in resp:
                if not chunk.choices or chunk.choices[0].index != 0:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as e:
            raise ProviderError(f"openai stream: {e}") from e
        finally:
            close = getattr(resp, "close", None)
            if callable(close):
                close()
        logger.info(f"stream model={configuration.model.name} latency_ms={(time.time() - started) * 1000.0:.1f}")
