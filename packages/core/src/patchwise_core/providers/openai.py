from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from patchwise_core.providers.base import BaseProvider

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAIProvider(BaseProvider):
    DEFAULT_MODEL = "gpt-4o"

    def __init__(self, api_key: str, model: str | None = None, base_url: str | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install openai"
            )
        super().__init__(model or self.DEFAULT_MODEL)
        self.client = _OpenAI(api_key=api_key, base_url=base_url)

    def _call_api(self, conversation: list[dict]) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=conversation,
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""


class GroqProvider(OpenAIProvider):
    """Groq serves an OpenAI-compatible chat API, so the OpenAI SDK is reused."""

    DEFAULT_MODEL = "llama3-70b-8192"

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(api_key, model=model, base_url=GROQ_BASE_URL)
