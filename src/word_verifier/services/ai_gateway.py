"""Uniform chat interface over several AI providers."""

import logging

from word_verifier.exceptions import ProviderError
from word_verifier.models.chat_transport import ChatTransport
from word_verifier.models.providers import ModelRegistry, ProviderKind
from word_verifier.services.prompts import SYSTEM_INSTRUCTION, build_user_message
from word_verifier.services.response_parser import ParseResult, parse_word_statuses

logger = logging.getLogger(__name__)


class AIGatewayClient:
    """Routes a model to its provider and parses the answer into word statuses."""

    def __init__(
        self,
        registry: ModelRegistry,
        transports: dict[ProviderKind, ChatTransport],
        system_prompt: str = SYSTEM_INSTRUCTION,
    ):
        """
        Initialize the gateway.

        Args:
            registry: Model to provider mapping.
            transports: One transport per provider with credentials configured.
            system_prompt: Fixed instruction defining the output contract.
        """
        self._registry = registry
        self._transports = transports
        self._system_prompt = system_prompt

    @property
    def registry(self) -> ModelRegistry:
        return self._registry

    def _transport_for(self, model: str) -> tuple[ChatTransport, str]:
        kind, name = self._registry.resolve(model)
        transport = self._transports.get(kind)
        if transport is None:
            raise ProviderError(model, f"no credentials configured for provider {kind.value}")
        return transport, name

    def complete(self, model: str, prompt: str) -> str:
        """
        Send the prompt to the model and return its raw text.

        Raises:
            InvalidModelError: If the model is unknown.
            ProviderError: If the provider call fails.
        """
        transport, name = self._transport_for(model)
        return transport.complete(name, self._system_prompt, prompt)

    def chat(self, model: str, prompt: str) -> ParseResult:
        """
        Ask a model to verify words and parse its answer.

        Malformed answers come back as a non-ok ParseResult (results is None);
        only transport failures raise.

        Args:
            model: Model identifier, bare or provider-qualified.
            prompt: User message built with build_prompt().

        Returns:
            ParseResult whose results hold the {word, status} pairs on success.

        Raises:
            InvalidModelError: If the model is unknown.
            ProviderError: If the provider call fails.
        """
        text = self.complete(model, prompt)
        result = parse_word_statuses(text)
        if not result.ok:
            logger.warning("Unusable response from %s: %s", model, result.detail)
        return result

    @staticmethod
    def build_prompt(language: str, words: list[str]) -> str:
        return build_user_message(language, words)
