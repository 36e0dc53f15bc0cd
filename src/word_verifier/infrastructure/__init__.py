"""Infrastructure package."""

from word_verifier.infrastructure.anthropic_client import AnthropicClient
from word_verifier.infrastructure.dependency_injection import DependenciesContainer
from word_verifier.infrastructure.gemini_client import GeminiClient
from word_verifier.infrastructure.openai_compatible_client import OpenAICompatibleClient
from word_verifier.infrastructure.sqs_client import SQSClient

__all__ = [
    "AnthropicClient",
    "DependenciesContainer",
    "GeminiClient",
    "OpenAICompatibleClient",
    "SQSClient",
]
