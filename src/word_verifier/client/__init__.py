"""Client package: API client, batch poller and consensus."""

from word_verifier.client.api_client import WatApiClient
from word_verifier.client.consensus import (
    Consensus,
    classify_answer,
    consensus_from_statuses,
    make_consensus,
    status_to_answer,
)
from word_verifier.client.poller import BatchPoller, WordEntry, merge_output

__all__ = [
    "WatApiClient",
    "Consensus",
    "classify_answer",
    "consensus_from_statuses",
    "make_consensus",
    "status_to_answer",
    "BatchPoller",
    "WordEntry",
    "merge_output",
]
