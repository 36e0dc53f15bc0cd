"""Publishes verification work items to SQS."""

import logging

from word_verifier.exceptions import QueueError
from word_verifier.infrastructure.sqs_client import SQSClient
from word_verifier.models.schemas import WorkItem

logger = logging.getLogger(__name__)


class SQSPublisher:
    """Publishes work items to the verification queue."""

    def __init__(self, sqs_client: SQSClient, queue_url: str):
        self._sqs_client = sqs_client
        self._queue_url = queue_url

    @property
    def queue_url(self) -> str:
        return self._queue_url

    def publish_work_item(self, item: WorkItem) -> None:
        """
        Enqueue one work item.

        Raises:
            QueueError: If the queue URL is missing or the send failed.
        """
        if not self._queue_url:
            logger.error("SQS_QUEUE_URL not set in environment")
            raise QueueError("verification queue is not configured")

        body = item.model_dump(by_alias=True)
        if not self._sqs_client.send_message(self._queue_url, body):
            raise QueueError(f"failed to enqueue batch {item.batch_id}")

        logger.info(
            "Enqueued batch %s: %d words x %d models",
            item.batch_id,
            len(item.words),
            len(item.models),
        )
