"""Majority vote over per-model answers for one word."""

from enum import Enum

from word_verifier.models.schemas import WordStatus

# Answers are short labels; anything past this prefix is ignored
ANSWER_PREFIX_LENGTH = 20

MAJORITY_THRESHOLD = 0.5


class Consensus(str, Enum):
    """Verdict for a word across all consulted models."""

    MISSPELLING = "misspelling"
    PROPER_NAME = "proper_name"
    SOMETHING_ELSE = "something_else"
    UNDEFINED = "undefined"


# Checked in order; "proper name" before the misspelling keywords
KEYWORDS: tuple[tuple[Consensus, tuple[str, ...]], ...] = (
    (Consensus.PROPER_NAME, ("proper name", "proper noun")),
    (Consensus.MISSPELLING, ("misspell", "typo")),
    (Consensus.SOMETHING_ELSE, ("something else",)),
)

STATUS_ANSWERS: dict[int, str] = {
    WordStatus.INCORRECT: "misspell/typo",
    WordStatus.CORRECT: "something else",
    WordStatus.NAME: "proper name",
}


def status_to_answer(status: int) -> str | None:
    """Map a server status to the answer label it stands for; unchecked gives None."""
    return STATUS_ANSWERS.get(status)


def classify_answer(answer: str | None) -> Consensus | None:
    """
    Put one answer into a category.

    Args:
        answer: Free-text answer of a model.

    Returns:
        The category, or None if no keyword matches.
    """
    if not answer:
        return None

    head = answer[:ANSWER_PREFIX_LENGTH].lower()
    for category, keywords in KEYWORDS:
        if any(keyword in head for keyword in keywords):
            return category
    return None


def make_consensus(answers: list[str | None], consulted: int | None = None) -> Consensus:
    """
    Reduce model answers to a single verdict.

    The winner needs the strict maximum of votes and at least half of the
    consulted models. Ties and weak majorities are UNDEFINED.

    Args:
        answers: One answer per model that replied; None for no answer.
        consulted: Number of models asked; defaults to len(answers).

    Returns:
        The verdict.
    """
    if consulted is None:
        consulted = len(answers)

    tally = {category: 0 for category, _ in KEYWORDS}
    for answer in answers:
        category = classify_answer(answer)
        if category is not None:
            tally[category] += 1

    maximum = max(tally.values())
    if maximum == 0 or consulted <= 0:
        return Consensus.UNDEFINED

    leaders = [category for category, votes in tally.items() if votes == maximum]
    if len(leaders) > 1 or maximum / consulted < MAJORITY_THRESHOLD:
        return Consensus.UNDEFINED

    return leaders[0]


def consensus_from_statuses(statuses: list[int]) -> Consensus:
    """Verdict for a word from the statuses recorded by each model."""
    return make_consensus([status_to_answer(status) for status in statuses])
