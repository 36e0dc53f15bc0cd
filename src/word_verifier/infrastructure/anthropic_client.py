"""Anthropic client wrapper."""

import logging

import anthropic

from word_verifier.exceptions import ProviderError
from word_verifier.models.chat_transport import ChatTransport

logger = logging.getLogger(__name__)


class AnthropicClient(ChatTransport):
    """Handles Anthropic Messages API calls."""

    def __init__(self, client: anthropic.Anthropic, max_tokens: int = 8192, temperature: float = 0.1):
        """
        Initialize Anthropic client wrapper.

        Args:
            client: anthropic.Anthropic instance (owns timeout and retries).
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
        """
        self._client = client
        self._max_tokens = max_tokens
        self._temperature = temperature

    def complete(self, model: str, system_prompt: str, user_message: str) -> str:
        logger.info("Invoking Anthropic model: %s", model)
        try:
            message = self._client.messages.create(
                model=model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APIError as e:
            raise ProviderError(model, str(e)) from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        logger.info("Anthropic response received, length: %d chars", len(text))
        return text
