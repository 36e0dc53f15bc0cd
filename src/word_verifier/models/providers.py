"""Provider kinds and the model identifier registry."""

from dataclasses import dataclass, field
from enum import Enum

from word_verifier.exceptions import InvalidModelError


class ProviderKind(str, Enum):
    """AI providers the gateway can talk to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    MISTRAL = "mistral"
    QWEN = "qwen"
    GEMINI = "gemini"


@dataclass(frozen=True)
class ProviderSpec:
    """Endpoint and credential settings for one provider."""

    kind: ProviderKind
    base_url: str
    api_key_setting: str
    # Path segment appended to AI_GATEWAY_URL when routing through a gateway
    gateway_slug: str | None = None


PROVIDERS: dict[ProviderKind, ProviderSpec] = {
    ProviderKind.OPENAI: ProviderSpec(
        kind=ProviderKind.OPENAI,
        base_url="https://api.openai.com/v1",
        api_key_setting="OPENAI_API_KEY",
        gateway_slug="openai",
    ),
    ProviderKind.ANTHROPIC: ProviderSpec(
        kind=ProviderKind.ANTHROPIC,
        base_url="https://api.anthropic.com",
        api_key_setting="ANTHROPIC_API_KEY",
        gateway_slug="anthropic",
    ),
    ProviderKind.MISTRAL: ProviderSpec(
        kind=ProviderKind.MISTRAL,
        base_url="https://api.mistral.ai/v1",
        api_key_setting="MISTRAL_API_KEY",
        gateway_slug="mistral/v1",
    ),
    ProviderKind.QWEN: ProviderSpec(
        kind=ProviderKind.QWEN,
        base_url="https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
        api_key_setting="QWEN_API_KEY",
    ),
    ProviderKind.GEMINI: ProviderSpec(
        kind=ProviderKind.GEMINI,
        base_url="https://generativelanguage.googleapis.com",
        api_key_setting="GOOGLE_API_KEY",
    ),
}


DEFAULT_ROSTER: dict[ProviderKind, tuple[str, ...]] = {
    ProviderKind.OPENAI: (
        "gpt-4o",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
        "o3-mini",
        "o1",
        "o1-mini",
    ),
    ProviderKind.ANTHROPIC: (
        "claude-3-7-sonnet-latest",
        "claude-3-5-sonnet-latest",
        "claude-3-5-haiku-latest",
        "claude-3-opus-latest",
    ),
    ProviderKind.QWEN: (
        "qwen2.5-7b-instruct",
        "qwen2.5-14b-instruct",
        "qwen-max",
        "qwen-plus",
        "qwen-turbo",
    ),
    ProviderKind.MISTRAL: (
        "ministral-3b-latest",
        "codestral-latest",
        "mistral-large-latest",
        "pixtral-large-latest",
        "ministral-8b-latest",
    ),
    ProviderKind.GEMINI: (
        "gemini-2.0-flash",
        "gemini-2.5-flash",
        "gemini-2.5-pro",
    ),
}


@dataclass
class ModelRegistry:
    """Maps model identifiers to the provider that serves them."""

    roster: dict[ProviderKind, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_ROSTER)
    )

    def __post_init__(self):
        self._index: dict[str, ProviderKind] = {}
        for kind, models in self.roster.items():
            for model in models:
                self._index[model] = kind

    def resolve(self, model: str) -> tuple[ProviderKind, str]:
        """
        Find the provider for a model identifier.

        Accepts bare ids ("gpt-4o") and provider-qualified ids ("openai/gpt-4o").

        Args:
            model: Model identifier.

        Returns:
            Tuple of (provider kind, bare model id).

        Raises:
            InvalidModelError: If the model is not in the roster.
        """
        prefix, sep, name = model.partition("/")
        if sep:
            try:
                kind = ProviderKind(prefix)
            except ValueError:
                raise InvalidModelError(f'Model "{model}" is invalid') from None
            if self._index.get(name) != kind:
                raise InvalidModelError(f'Model "{model}" is invalid')
            return kind, name

        kind = self._index.get(model)
        if kind is None:
            raise InvalidModelError(f'Model "{model}" is invalid')
        return kind, model

    def is_known(self, model: str) -> bool:
        """Return True if the model identifier resolves."""
        try:
            self.resolve(model)
            return True
        except InvalidModelError:
            return False

    def as_dict(self) -> dict[str, list[str]]:
        """Roster grouped by provider name."""
        return {kind.value: list(models) for kind, models in self.roster.items()}
