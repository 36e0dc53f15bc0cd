"""Creates or resets batches, seeds the result matrix and enqueues the work."""

import logging
import uuid
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from word_verifier.exceptions import ConflictError, NotFoundError, QueueError, ValidationError
from word_verifier.models.providers import ModelRegistry
from word_verifier.models.schemas import (
    BatchDetails,
    BatchProgress,
    BatchRequest,
    BatchStatus,
    BatchSummary,
    BatchView,
    ModelFailure,
    WordCorrectRequest,
    WorkItem,
)
from word_verifier.services.batch_store import BatchStore, utcnow
from word_verifier.services.sqs_publisher import SQSPublisher
from word_verifier.utils.chunking import unique

logger = logging.getLogger(__name__)

QUEUE_FAILURE_MODEL = "queue"


class BatchOrchestrator:
    """Handles batch submission and the thin CRUD around batches."""

    def __init__(
        self,
        store: BatchStore,
        publisher: SQSPublisher,
        registry: ModelRegistry,
        pending_timeout_minutes: int = 60,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Result matrix store.
            publisher: Work item publisher.
            registry: Known models, used to reject unknown ones up front.
            pending_timeout_minutes: Age after which a pending batch counts as stuck.
        """
        self._store = store
        self._publisher = publisher
        self._registry = registry
        self._pending_timeout = timedelta(minutes=pending_timeout_minutes)

    def _validate(self, request: BatchRequest) -> tuple[str, list[str], list[str]]:
        language = request.language.strip()
        if not language:
            raise ValidationError("language must not be blank")

        if not request.words:
            raise ValidationError("words must not be empty")
        if any(not word.strip() for word in request.words):
            raise ValidationError("words must not contain blank entries")

        if not request.models:
            raise ValidationError("models must not be empty")

        requested = unique(request.models)
        if not requested:
            raise ValidationError("models must not be empty")

        unknown = [model for model in requested if not self._registry.is_known(model)]
        if unknown:
            raise ValidationError(f"unknown models: {', '.join(unknown)}")

        # "openai/gpt-4o" and "gpt-4o" are the same model
        models = unique([self._registry.resolve(model)[1] for model in requested])

        return language, unique(request.words), models

    def submit(
        self,
        ietf_code: str,
        resource_type: str,
        request: BatchRequest,
        created_by: str | None = None,
    ) -> BatchView:
        """
        Create or refresh the batch for a job key and enqueue its verification.

        The batch row, the word upsert and the matrix reset share one
        transaction; the work item is sent after it commits.

        Args:
            ietf_code: Language tag part of the job key.
            resource_type: Resource part of the job key.
            request: Language, words and models of the run.
            created_by: Caller identity, stored on new batches.

        Returns:
            The queued batch view.

        Raises:
            ValidationError: On bad input.
            ConflictError: If a run for the job key is in flight.
            QueueError: If the work item could not be enqueued.
        """
        if not ietf_code.strip() or not resource_type.strip():
            raise ValidationError("ietf_code and resource_type are required")

        language, word_list, models = self._validate(request)
        total = len(word_list) * len(models)
        run_id = uuid.uuid4().hex

        with self._store.begin() as conn:
            record = self._store.find_batch(ietf_code, resource_type, conn=conn)

            if record is None:
                batch_id = self._store.create_batch(
                    conn,
                    ietf_code=ietf_code,
                    resource_type=resource_type,
                    language=language,
                    total_pending=total,
                    run_id=run_id,
                    created_by=created_by,
                )
            else:
                batch_id = record.id
                stale_before = utcnow() - self._pending_timeout
                if not self._store.claim_batch(
                    conn,
                    batch_id,
                    language=language,
                    total_pending=total,
                    run_id=run_id,
                    stale_before=stale_before,
                ):
                    raise ConflictError("batch in progress")
                if record.pending:
                    logger.warning("Reclaimed stuck batch %s (last run %s)", batch_id, record.run_id)

            self._store.seed_matrix(conn, batch_id, word_list, models, run_id)

        item = WorkItem(
            batch_id=batch_id,
            run_id=run_id,
            language=language,
            words=word_list,
            models=models,
        )
        try:
            self._publisher.publish_work_item(item)
        except QueueError as e:
            logger.error("Releasing batch %s after enqueue failure: %s", batch_id, e)
            try:
                self._store.finish_run(
                    batch_id, run_id, [ModelFailure(model=QUEUE_FAILURE_MODEL, message=e.message)]
                )
            except SQLAlchemyError:
                # Left pending; the staleness timeout frees it
                logger.exception("Failed to release batch %s", batch_id)
            raise

        logger.info(
            "Submitted batch %s (%s/%s): %d words x %d models",
            batch_id,
            ietf_code,
            resource_type,
            len(word_list),
            len(models),
        )

        return BatchView(
            id=batch_id,
            ietf_code=ietf_code,
            resource_type=resource_type,
            language=language,
            created_by=record.created_by if record else created_by,
            details=BatchDetails(
                status=BatchStatus.QUEUED,
                progress=BatchProgress(completed=0, total=total),
                error=None,
                errors=[],
                output=[],
            ),
        )

    def delete(self, ietf_code: str, resource_type: str) -> bool:
        """
        Delete the batch for a job key with everything it owns.

        Raises:
            NotFoundError: If no batch exists for the key.
        """
        record = self._store.find_batch(ietf_code, resource_type)
        if record is None:
            raise NotFoundError("batch not found")

        deleted = self._store.delete_batch(record.id)
        logger.info("Deleted batch %s (%s/%s)", record.id, ietf_code, resource_type)
        return deleted

    def list_with_results(self) -> list[BatchSummary]:
        return self._store.list_batches_with_results()

    def set_word_correct(self, request: WordCorrectRequest) -> bool:
        """
        Record a reviewer's verdict for one word.

        Raises:
            NotFoundError: If the batch or the word does not exist.
        """
        if self._store.get_batch(request.batch_id) is None:
            raise NotFoundError("batch not found")

        if not self._store.set_word_correct(request.batch_id, request.word, request.correct):
            raise NotFoundError(f'word "{request.word}" not found in batch')
        return True
