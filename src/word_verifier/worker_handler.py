"""AWS Lambda handler for the verification worker.

Triggered by SQS. Every record is one work item; each is attempted once and
acknowledged regardless of the outcome.
"""

import logging

from word_verifier.config import config
from word_verifier.handlers.verification import process_message
from word_verifier.infrastructure.dependency_injection import DependenciesContainer
from word_verifier.services.sqs_receiver import messages_from_event

# Configure root logger for Lambda (all modules will inherit this)
logging.getLogger().setLevel(logging.INFO)
logger = logging.getLogger(__name__)

_container = None


def get_container() -> DependenciesContainer:
    """Build the DI container once per Lambda execution environment."""
    global _container
    if _container is None:
        config.validate()
        _container = DependenciesContainer()
    return _container


def lambda_handler(event: dict, context) -> dict:
    """
    Lambda handler function triggered by SQS.

    Args:
        event: SQS event with one or more records.
        context: Lambda context object.

    Returns:
        Partial batch response with no failures, so nothing is redelivered.
    """
    records = event.get("Records", [])
    logger.info("Received %d SQS record(s)", len(records))

    success_count = 0
    fail_count = 0

    try:
        container = get_container()
        store = container.store()
        gateway = container.gateway()

        for message in messages_from_event(event):
            try:
                result = process_message(item=message.item, store=store, gateway=gateway)
            except Exception as e:
                logger.exception("Failed to process message %s: %s", message.message_id, e)
                fail_count += 1
                continue

            if result.success:
                success_count += 1
            else:
                fail_count += 1

    except Exception as e:
        logger.exception("Worker invocation failed: %s", e)

    logger.info("Stats: %d success, %d failed", success_count, fail_count)

    return {"batchItemFailures": []}
