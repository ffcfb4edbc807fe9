from __future__ import annotations

from patchwise_core.providers.base import BaseProvider


class AnthropicProvider(BaseProvider):
    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'patchwise[anthropic]'"
            )
        super().__init__(model or self.DEFAULT_MODEL)
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, conversation: list[dict]) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        # The Messages API takes the system prompt as a separate argument.
        system = "\n\n".join(m["content"] for m in conversation if m["role"] == "system")
        messages = [m for m in conversation if m["role"] != "system"]
        response = self.client.messages.create(
            model=self.model,
            system=system,
            messages=messages,
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
