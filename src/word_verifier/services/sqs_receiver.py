"""Reads work items from SQS, either by long polling or from Lambda events."""

import logging

from pydantic import ValidationError as PydanticValidationError

from word_verifier.infrastructure.sqs_client import SQSClient
from word_verifier.models.schemas import QueueMessage, WorkItem

logger = logging.getLogger(__name__)


def parse_work_item(body: str | None) -> WorkItem | None:
    """
    Parse a message body into a work item.

    Returns:
        WorkItem, or None if the body is not a valid work item.
    """
    try:
        return WorkItem.model_validate_json(body or "{}")
    except PydanticValidationError as e:
        logger.error("Failed to parse work item: %s", e)
        return None


def messages_from_event(event: dict) -> list[QueueMessage]:
    """
    Extract work items from an SQS-triggered Lambda event.

    Records that do not parse are logged and dropped.
    """
    messages = []
    for record in event.get("Records", []):
        item = parse_work_item(record.get("body"))
        if item is None:
            continue
        messages.append(
            QueueMessage(
                item=item,
                message_id=record.get("messageId"),
                receipt_handle=record.get("receiptHandle"),
            )
        )
    return messages


class SQSReceiver:
    """Pulls work items from the verification queue and acknowledges them."""

    def __init__(self, sqs_client: SQSClient, queue_url: str):
        """
        Create a receiver bound to one queue.

        Args:
            sqs_client: SQSClient instance.
            queue_url: Verification queue URL.
        """
        self._sqs_client = sqs_client
        self._queue_url = queue_url

    @property
    def queue_url(self) -> str:
        """Verification queue URL."""
        return self._queue_url

    def receive_messages(
        self,
        max_messages: int = 1,
        wait_time: int = 20,
    ) -> list[QueueMessage]:
        """
        Long-poll the verification queue for work items.

        Messages whose body is not a work item are deleted so they are not
        redelivered forever.

        Args:
            max_messages: Maximum number of messages to receive.
            wait_time: Long polling wait time in seconds.

        Returns:
            List of QueueMessage objects.
        """
        if not self._queue_url:
            logger.error("SQS_QUEUE_URL not set in environment")
            return []

        raw_messages = self._sqs_client.receive_messages(
            queue_url=self._queue_url,
            max_messages=max_messages,
            wait_time=wait_time,
        )

        messages = []
        for raw in raw_messages:
            item = parse_work_item(raw.get("Body"))
            if item is None:
                if raw.get("ReceiptHandle"):
                    self._sqs_client.delete_message(self._queue_url, raw["ReceiptHandle"])
                continue
            messages.append(
                QueueMessage(
                    item=item,
                    message_id=raw.get("MessageId"),
                    receipt_handle=raw.get("ReceiptHandle"),
                )
            )

        return messages

    def delete_message(self, message: QueueMessage) -> bool:
        """
        Acknowledge a processed work item.

        Args:
            message: QueueMessage to delete.

        Returns:
            True if SQS confirmed the delete.
        """
        if not self._queue_url:
            logger.error("SQS_QUEUE_URL not set in environment")
            return False

        if not message.receipt_handle:
            logger.error("Message has no receipt handle")
            return False

        return self._sqs_client.delete_message(
            queue_url=self._queue_url,
            receipt_handle=message.receipt_handle,
        )
