"""Abstract chat transport for one AI provider."""

from abc import ABC, abstractmethod


class ChatTransport(ABC):
    """Sends a system instruction and one user message to a provider."""

    @abstractmethod
    def complete(self, model: str, system_prompt: str, user_message: str) -> str:
        """
        Run one chat completion.

        Args:
            model: Bare model id understood by the provider.
            system_prompt: Fixed system instruction.
            user_message: User message content.

        Returns:
            Response text (possibly empty).

        Raises:
            ProviderError: On any transport or API failure.
        """
        pass
