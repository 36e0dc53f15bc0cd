"""Verification handler: runs every model of a work item and records the results."""

import logging
import threading

from sqlalchemy.exc import SQLAlchemyError

from word_verifier.exceptions import (
    AttributionError,
    ParseError,
    WordVerifierError,
)
from word_verifier.models.schemas import (
    FINAL_STATUSES,
    ModelFailure,
    ProcessResult,
    WorkItem,
)
from word_verifier.services.ai_gateway import AIGatewayClient
from word_verifier.services.batch_store import BatchStore
from word_verifier.services.response_parser import ParseResult
from word_verifier.services.sqs_receiver import SQSReceiver

logger = logging.getLogger(__name__)


def collect_statuses(
    model: str,
    parsed: ParseResult,
    allowed: set[str],
) -> tuple[dict[str, int], list[ModelFailure]]:
    """
    Keep the pairs of a parsed response that belong to the submitted words.

    Args:
        model: Model that produced the response.
        parsed: Successful parse result.
        allowed: Words of the work item.

    Returns:
        Tuple of (word -> status, failures for discarded pairs).
    """
    statuses: dict[str, int] = {}
    failures: list[ModelFailure] = []

    for pair in parsed.results or []:
        word = pair.word.strip()
        if word not in allowed:
            error = AttributionError(model, pair.word)
        elif pair.status not in FINAL_STATUSES:
            error = AttributionError(model, pair.word, status=pair.status)
        else:
            statuses[word] = pair.status
            continue

        logger.warning(error.message)
        failures.append(ModelFailure(model=model, message=error.message))

    return statuses, failures


def verify_with_model(
    item: WorkItem,
    model: str,
    gateway: AIGatewayClient,
    store: BatchStore,
) -> tuple[int, list[ModelFailure]]:
    """
    Ask one model about all words of the item and store its answers.

    Provider and parse failures are returned, never raised. Store failures
    propagate.

    Returns:
        Tuple of (rows updated, failures).
    """
    prompt = gateway.build_prompt(item.language, item.words)

    try:
        parsed = gateway.chat(model, prompt)
    except WordVerifierError as e:
        logger.error("Model %s failed for batch %s: %s", model, item.batch_id, e)
        return 0, [ModelFailure(model=model, message=e.message)]
    except Exception as e:
        logger.error(
            "Unexpected error from %s for batch %s: %s", model, item.batch_id, e, exc_info=True
        )
        return 0, [ModelFailure(model=model, message=f'Model "{model}" failed: {e}')]

    if not parsed.ok:
        error = ParseError(model, parsed.detail or parsed.outcome.value)
        logger.error("Batch %s: %s", item.batch_id, error)
        return 0, [ModelFailure(model=model, message=error.message)]

    statuses, failures = collect_statuses(model, parsed, set(item.words))
    updated = store.update_model_statuses(item.batch_id, model, statuses, run_id=item.run_id)

    logger.info(
        "Batch %s: %s answered %d/%d words, %d rows updated",
        item.batch_id,
        model,
        len(statuses),
        len(item.words),
        updated,
    )
    return updated, failures


def process_message(
    item: WorkItem,
    store: BatchStore,
    gateway: AIGatewayClient,
) -> ProcessResult:
    """
    Process a single work item.

    Models are attempted one after another. The batch is closed once all of
    them were tried, with every failure of the run recorded on it.

    Args:
        item: Work item from the queue.
        store: Result matrix store.
        gateway: AI gateway client.

    Returns:
        ProcessResult; skipped is set for stale or orphaned deliveries.
    """
    batch_id = item.batch_id
    logger.info(
        "Processing batch %s (run=%s, language=%s, %d words x %d models)",
        batch_id,
        item.run_id,
        item.language,
        len(item.words),
        len(item.models),
    )

    try:
        batch = store.get_batch(batch_id)
        if batch is None:
            logger.warning("Batch %s no longer exists, skipping", batch_id)
            return ProcessResult(batch_id=batch_id, success=True, skipped=True)

        if item.run_id is not None and batch.run_id != item.run_id:
            logger.warning(
                "Stale work item for batch %s (run %s, current %s), skipping",
                batch_id,
                item.run_id,
                batch.run_id,
            )
            return ProcessResult(batch_id=batch_id, success=True, skipped=True)

        if not batch.pending:
            logger.warning("Batch %s is not pending, skipping", batch_id)
            return ProcessResult(batch_id=batch_id, success=True, skipped=True)

        updated = 0
        failures: list[ModelFailure] = []
        for model in item.models:
            model_updated, model_failures = verify_with_model(item, model, gateway, store)
            updated += model_updated
            failures.extend(model_failures)

        if not store.finish_run(batch_id, item.run_id, failures):
            logger.warning("Batch %s was reset or deleted during the run", batch_id)

    except SQLAlchemyError:
        logger.exception("Store failure while processing batch %s", batch_id)
        return ProcessResult(batch_id=batch_id, success=False)

    if failures:
        logger.warning("Batch %s finished with %d failure(s)", batch_id, len(failures))
    else:
        logger.info("Batch %s finished, %d rows updated", batch_id, updated)

    return ProcessResult(
        batch_id=batch_id,
        success=not failures,
        models_attempted=len(item.models),
        updated=updated,
        errors=failures,
    )


def run_worker_loop(
    sqs_receiver: SQSReceiver,
    store: BatchStore,
    gateway: AIGatewayClient,
    stop_event: threading.Event | None = None,
) -> None:
    """
    Continuous worker loop that polls SQS and processes messages.

    Args:
        sqs_receiver: SQS receiver service.
        store: Result matrix store.
        gateway: AI gateway client.
        stop_event: Ends the loop once set; runs forever when None.
    """
    logger.info("Starting continuous worker loop...")

    success_count = 0
    fail_count = 0

    while stop_event is None or not stop_event.is_set():
        messages = sqs_receiver.receive_messages(max_messages=1, wait_time=20)

        if not messages:
            logger.debug("No messages received, continuing to poll...")
            continue

        for message in messages:
            result = process_message(item=message.item, store=store, gateway=gateway)

            if result.success:
                success_count += 1
            else:
                fail_count += 1

            # Always delete message from queue
            sqs_receiver.delete_message(message)

            logger.info("Stats: %d success, %d failed", success_count, fail_count)

    logger.info("Worker loop stopped")
