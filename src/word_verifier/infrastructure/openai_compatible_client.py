"""Chat client for OpenAI-compatible /chat/completions endpoints."""

import logging

import httpx

from word_verifier.exceptions import ProviderError
from word_verifier.models.chat_transport import ChatTransport

logger = logging.getLogger(__name__)

# Reasoning models reject system messages, temperature and max_tokens
REASONING_PREFIXES = ("o1", "o3")


class OpenAICompatibleClient(ChatTransport):
    """Handles chat completions for OpenAI, Mistral and Qwen."""

    def __init__(
        self,
        client: httpx.Client,
        base_url: str,
        api_key: str,
        max_tokens: int = 8192,
        temperature: float = 0.1,
    ):
        """
        Initialize the client wrapper.

        Args:
            client: httpx client (owns the timeout).
            base_url: Provider base URL, e.g. "https://api.openai.com/v1".
            api_key: Bearer token for the provider.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
        """
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._temperature = temperature

    def _build_body(self, model: str, system_prompt: str, user_message: str) -> dict:
        if model.startswith(REASONING_PREFIXES):
            return {
                "model": model,
                "max_completion_tokens": self._max_tokens,
                "messages": [
                    {"role": "user", "content": f"{system_prompt}\n\n{user_message}"},
                ],
            }

        return {
            "model": model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        }

    def complete(self, model: str, system_prompt: str, user_message: str) -> str:
        url = f"{self._base_url}/chat/completions"
        logger.info("Invoking model %s at %s", model, self._base_url)

        try:
            response = self._client.post(
                url,
                json=self._build_body(model, system_prompt, user_message),
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                model, f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(model, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise ProviderError(model, f"invalid JSON payload: {e}") from e

        try:
            text = payload["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(model, "response has no message content") from e

        logger.info("Response from %s received, length: %d chars", model, len(text))
        return text
