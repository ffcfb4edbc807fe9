"""Base provider implementing the Template Method pattern.

All providers share the same dispatch algorithm:
    complete(conversation) → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call with the conversation and return the text response

Prompt construction and budget checks happen before a conversation reaches a
provider; a provider only ships the messages and returns what the model said.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 1024


class BaseProvider(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    TEMPERATURE: float = 0.2

    def __init__(self, model: str):
        self.model = model

    def complete(self, conversation: list[dict]) -> str | None:
        """Send a conversation and return the model's text, or None if every attempt failed."""
        return self._call_with_retry(conversation)

    @abstractmethod
    def _call_api(self, conversation: list[dict]) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_retry handles retries and logging.
        """

    def _call_with_retry(self, conversation: list[dict]) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(conversation)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
