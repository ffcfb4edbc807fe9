"""Token budget checks for assembled conversations.

Token counts are an estimate. We count with tiktoken's cl100k_base encoding
(the gpt-3.5-turbo tokenizer) for every model, including Groq-hosted Llama,
Mixtral and Gemma models and Claude, whose real tokenizers differ. Treat
"within limit" as a heuristic and keep some headroom for the reply.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from types import MappingProxyType

import tiktoken

from patchwise_core.errors import UnknownModelError

logger = logging.getLogger(__name__)

ESTIMATION_ENCODING = "cl100k_base"

# Chat framing overhead, following OpenAI's published counting recipe for
# gpt-3.5-turbo: every message costs a fixed 3 tokens on top of its fields,
# and every reply is primed with 3 more.
_TOKENS_PER_MESSAGE = 3
_REPLY_PRIMING_TOKENS = 3

# Context window per model. Add an entry here before a model can be used.
MODEL_TOKEN_LIMITS = MappingProxyType(
    {
        "mixtral-8x7b-32768": 32768,
        "gemma-7b-it": 32768,
        "llama3-70b-8192": 8192,
        "llama3-8b-8192": 8192,
        "gpt-4o": 128000,
        "gpt-4o-mini": 128000,
        "claude-sonnet-4-20250514": 200000,
    }
)


@lru_cache(maxsize=1)
def _encoding():
    return tiktoken.get_encoding(ESTIMATION_ENCODING)


def get_model_limit(model: str) -> int:
    try:
        return MODEL_TOKEN_LIMITS[model]
    except KeyError:
        raise UnknownModelError(model, list(MODEL_TOKEN_LIMITS)) from None


def get_token_length(blob: str) -> int:
    return len(_encoding().encode(blob, disallowed_special=()))


def count_conversation_tokens(conversation: list[dict]) -> int:
    """Estimate the prompt tokens a chat conversation consumes."""
    total = _REPLY_PRIMING_TOKENS
    for message in conversation:
        total += _TOKENS_PER_MESSAGE
        for value in message.values():
            total += get_token_length(str(value))
    return total


def is_conversation_within_limit(conversation: list[dict], model: str, headroom: int = 0) -> bool:
    """Return True if the conversation (plus headroom) is strictly below the model's limit.

    Raises UnknownModelError for a model missing from MODEL_TOKEN_LIMITS. An
    unknown model is never treated as unlimited.
    """
    limit = get_model_limit(model)
    tokens = count_conversation_tokens(conversation)
    within = tokens + headroom < limit
    if not within:
        logger.info("Conversation needs ~%d tokens (+%d headroom); %s allows %d.", tokens, headroom, model, limit)
    return within
