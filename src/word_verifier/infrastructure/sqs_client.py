"""boto3 SQS wrapper used by the verification queue publisher and receiver."""

import json
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# A work item asks every model in turn; the message must stay hidden meanwhile
DEFAULT_VISIBILITY_TIMEOUT = 900


class SQSClient:
    """
    Thin layer over the boto3 SQS client.

    Failures are logged and reported through the return value; callers
    decide whether a failed send is fatal.
    """

    def __init__(self, client: Any):
        self._client = client

    def _call(self, operation: str, queue_url: str, **kwargs) -> dict | None:
        try:
            return getattr(self._client, operation)(QueueUrl=queue_url, **kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error("SQS %s on %s failed: %s", operation, queue_url, e)
            return None

    def send_message(self, queue_url: str, message_body: dict) -> bool:
        """
        Send a JSON message.

        Returns:
            True if SQS accepted the message.
        """
        response = self._call(
            "send_message", queue_url, MessageBody=json.dumps(message_body, ensure_ascii=False)
        )
        if response is None:
            return False

        logger.info("Sent message %s to %s", response.get("MessageId"), queue_url)
        return True

    def receive_messages(
        self,
        queue_url: str,
        max_messages: int = 1,
        wait_time: int = 20,
        visibility_timeout: int = DEFAULT_VISIBILITY_TIMEOUT,
    ) -> list[dict]:
        """
        Long-poll for raw messages.

        Args:
            queue_url: SQS queue URL.
            max_messages: Upper bound of messages returned (1-10).
            wait_time: Long polling wait time in seconds.
            visibility_timeout: Seconds a received message stays hidden.

        Returns:
            Raw message dicts; empty on timeout or failure.
        """
        response = self._call(
            "receive_message",
            queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_time,
            VisibilityTimeout=visibility_timeout,
        )
        messages = (response or {}).get("Messages", [])
        if messages:
            logger.info("Received %d message(s) from %s", len(messages), queue_url)
        return messages

    def delete_message(self, queue_url: str, receipt_handle: str) -> bool:
        """Acknowledge a message; True if SQS confirmed the delete."""
        if self._call("delete_message", queue_url, ReceiptHandle=receipt_handle) is None:
            return False

        logger.debug("Deleted message from %s", queue_url)
        return True
