"""Reduce free-text model answers to {word, status} pairs.

Provider output is untrusted text. Parsing never raises for malformed
content; it reports what it found through ParseResult instead.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum

from word_verifier.models.schemas import WordResult

logger = logging.getLogger(__name__)


class ParseOutcome(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    MALFORMED = "malformed"


@dataclass
class ParseResult:
    """Typed outcome of parsing one model response."""

    outcome: ParseOutcome
    results: list[WordResult] | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == ParseOutcome.SUCCESS

    @classmethod
    def empty(cls, detail: str) -> "ParseResult":
        return cls(outcome=ParseOutcome.EMPTY, detail=detail)

    @classmethod
    def malformed(cls, detail: str) -> "ParseResult":
        return cls(outcome=ParseOutcome.MALFORMED, detail=detail)


def extract_json_array(text: str | None) -> str | None:
    """
    Return the substring from the first '[' to the last ']'.

    Args:
        text: Raw model response.

    Returns:
        The bracketed fragment, or None if there is no closing bracket after
        the first opening one.
    """
    if not text:
        return None

    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end <= start:
        return None
    return text[start:end + 1]


def _coerce_status(value) -> int | None:
    """Accept ints and integral strings; reject bools and everything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def parse_word_statuses(text: str | None) -> ParseResult:
    """
    Parse a model response into {word, status} pairs.

    Entries that are not objects with a string "word" and an integral
    "status" are skipped.

    Args:
        text: Raw model response.

    Returns:
        ParseResult: SUCCESS with at least one pair, EMPTY when the response
        or the array is empty, MALFORMED otherwise.
    """
    if text is None or not text.strip():
        return ParseResult.empty("empty response")

    fragment = extract_json_array(text)
    if fragment is None:
        return ParseResult.malformed("no JSON array found in response")

    try:
        data = json.loads(fragment)
    except json.JSONDecodeError as e:
        logger.debug("JSON parse error: %s", e)
        return ParseResult.malformed(f"invalid JSON: {e.msg}")

    if not isinstance(data, list):
        return ParseResult.malformed("response is not a JSON array")

    if not data:
        return ParseResult.empty("response array is empty")

    results = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        word = entry.get("word")
        status = _coerce_status(entry.get("status"))
        if not isinstance(word, str) or status is None:
            continue
        results.append(WordResult(word=word, status=status))

    if not results:
        return ParseResult.malformed("no {word, status} pairs in response")

    skipped = len(data) - len(results)
    if skipped:
        logger.warning("Skipped %d malformed entries in model response", skipped)

    return ParseResult(outcome=ParseOutcome.SUCCESS, results=results)
