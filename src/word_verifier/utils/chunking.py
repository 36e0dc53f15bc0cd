"""Helpers for splitting bulk writes into bounded statements."""

from collections.abc import Iterator, Sequence
from typing import TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """
    Yield consecutive slices of at most ``size`` items.

    Args:
        items: Sequence to split.
        size: Maximum slice length.

    Yields:
        Non-empty lists, in order, covering every item exactly once.
    """
    if size < 1:
        raise ValueError("chunk size must be a positive integer")

    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def unique(items: Sequence[str]) -> list[str]:
    """Strip and de-duplicate strings, keeping the first occurrence order."""
    seen: set[str] = set()
    result = []
    for item in items:
        value = item.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result
