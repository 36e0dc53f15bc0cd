"""Models package for the word verifier."""

from word_verifier.models.providers import ModelRegistry, ProviderKind
from word_verifier.models.schemas import (
    BatchStatus,
    BatchView,
    WorkItem,
    WordStatus,
)

__all__ = [
    "BatchStatus",
    "BatchView",
    "ModelRegistry",
    "ProviderKind",
    "WorkItem",
    "WordStatus",
]
