"""Google Gemini client wrapper."""

import logging

import httpx
from google import genai
from google.genai import errors, types

from word_verifier.exceptions import ProviderError
from word_verifier.models.chat_transport import ChatTransport

logger = logging.getLogger(__name__)


class GeminiClient(ChatTransport):
    """Handles Gemini generate_content calls."""

    def __init__(self, client: genai.Client, max_tokens: int = 8192, temperature: float = 0.1):
        """
        Initialize Gemini client wrapper.

        Args:
            client: genai.Client instance (owns the HTTP timeout).
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
        """
        self._client = client
        self._max_tokens = max_tokens
        self._temperature = temperature

    def complete(self, model: str, system_prompt: str, user_message: str) -> str:
        logger.info("Invoking Gemini model: %s", model)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self._temperature,
            max_output_tokens=self._max_tokens,
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )

        try:
            response = self._client.models.generate_content(
                model=model,
                contents=user_message,
                config=config,
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise ProviderError(model, str(e) or type(e).__name__) from e

        text = response.text or ""
        logger.info("Gemini response received, length: %d chars", len(text))
        return text
