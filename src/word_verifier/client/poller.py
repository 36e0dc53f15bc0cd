"""Polls a batch until it reaches a terminal status and keeps a local word map."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from word_verifier.client.api_client import WatApiClient
from word_verifier.client.consensus import Consensus, consensus_from_statuses
from word_verifier.config import config
from word_verifier.exceptions import WordVerifierError
from word_verifier.models.schemas import BatchProgress, BatchStatus, WordResponse

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchStatus, BatchProgress], None]


@dataclass
class WordEntry:
    """Local state of one word: model statuses, human verdict and consensus."""

    word: str
    correct: bool | None = None
    results: dict[str, int] = field(default_factory=dict)
    consensus: Consensus = Consensus.UNDEFINED


def merge_output(word_map: dict[str, WordEntry], output: list[WordResponse]) -> dict[str, WordEntry]:
    """
    Merge batch output into the word map.

    Entries are replaced wholesale and consensus recomputed, so merging the
    same output again leaves the map unchanged.

    Args:
        word_map: Map to update in place.
        output: Output of a batch view.

    Returns:
        The same map.
    """
    for response in output:
        results = {result.model: result.status for result in response.results}
        word_map[response.word] = WordEntry(
            word=response.word,
            correct=response.correct,
            results=results,
            consensus=consensus_from_statuses(list(results.values())),
        )
    return word_map


class BatchPoller:
    """Follows one batch through its statuses."""

    def __init__(
        self,
        api: WatApiClient,
        interval: float | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        """
        Initialize the poller.

        Args:
            api: Batch API client.
            interval: Seconds between polls; POLL_INTERVAL_SECONDS by default.
            on_progress: Called after every successful poll.
        """
        self._api = api
        self._interval = config.poll_interval_seconds if interval is None else interval
        self._on_progress = on_progress
        self._words: dict[str, WordEntry] = {}
        self._status = BatchStatus.QUEUED
        self._progress = BatchProgress(completed=0, total=0)
        self._error: str | None = None

    @property
    def words(self) -> dict[str, WordEntry]:
        return self._words

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def status(self) -> BatchStatus:
        return self._status

    @property
    def progress(self) -> BatchProgress:
        return self._progress

    @property
    def error(self) -> str | None:
        return self._error

    def poll(
        self,
        ietf_code: str,
        resource_type: str,
        cancel_event: threading.Event | None = None,
    ) -> BatchStatus:
        """
        Poll until the batch is terminal or the event is set.

        Cancelling stops polling only; the server-side run continues.

        Args:
            ietf_code: Language tag part of the job key.
            resource_type: Resource part of the job key.
            cancel_event: Set from another thread to stop polling.

        Returns:
            Last known status; UNKNOWN if the API failed.
        """
        if cancel_event is None:
            cancel_event = threading.Event()

        while not cancel_event.is_set():
            try:
                view = self._api.get_batch(ietf_code, resource_type)
            except WordVerifierError as e:
                logger.error("Polling %s/%s failed: %s", ietf_code, resource_type, e)
                self._error = e.message
                self._status = BatchStatus.UNKNOWN
                break

            details = view.details
            self._status = details.status
            self._progress = details.progress
            self._error = details.error
            if details.output:
                merge_output(self._words, details.output)

            if self._on_progress is not None:
                self._on_progress(self._status, self._progress)

            if self._status.is_terminal:
                logger.info(
                    "Batch %s/%s finished: %s", ietf_code, resource_type, self._status.value
                )
                break

            cancel_event.wait(self._interval)
        else:
            logger.info("Polling %s/%s cancelled", ietf_code, resource_type)

        return self._status
