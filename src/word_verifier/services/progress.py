"""Derives a batch's status and progress from the result matrix."""

import logging

from word_verifier.exceptions import NotFoundError
from word_verifier.models.schemas import (
    BatchDetails,
    BatchProgress,
    BatchRecord,
    BatchStatus,
    BatchView,
)
from word_verifier.services.batch_store import BatchStore

logger = logging.getLogger(__name__)


def compute_progress(total: int, incomplete: int) -> tuple[BatchProgress, float]:
    """
    Compute progress of a run.

    Unchecked rows left behind by failed models of a finished run
    (total == 0) are not counted, so completed + incomplete == total.

    Args:
        total: Size of the run's matrix (total_pending).
        incomplete: Unchecked results of the run.

    Returns:
        Tuple of (progress, ratio), ratio is 1 when total is 0.
    """
    total = max(total, 0)
    incomplete = min(max(incomplete, 0), total)
    completed = total - incomplete
    ratio = completed / total if total > 0 else 1.0
    return BatchProgress(completed=completed, total=total), ratio


def derive_status(ratio: float, has_errors: bool) -> BatchStatus:
    """Map a progress ratio to a status; recorded errors take precedence."""
    if has_errors:
        return BatchStatus.ERRORED
    if ratio == 0:
        return BatchStatus.QUEUED
    if ratio == 1:
        return BatchStatus.COMPLETE
    return BatchStatus.RUNNING


class ProgressAggregator:
    """Builds batch views on demand."""

    def __init__(self, store: BatchStore):
        self._store = store

    def get_batch(self, ietf_code: str, resource_type: str) -> BatchView:
        """
        Get the current view of the batch for a job key.

        Raises:
            NotFoundError: If no batch was ever submitted for the key.
        """
        record = self._store.find_batch(ietf_code, resource_type)
        if record is None:
            raise NotFoundError("batch not found")
        return self.build_view(record)

    def build_view(self, record: BatchRecord) -> BatchView:
        incomplete = self._store.count_incomplete(record.id, record.run_id)
        progress, ratio = compute_progress(record.total_pending, incomplete)

        errors = self._store.fetch_errors(record.id)
        has_errors = bool(errors) or record.error is not None
        status = derive_status(ratio, has_errors)

        output = self._store.fetch_matrix(record.id)

        logger.debug(
            "Batch %s: %s %d/%d", record.id, status.value, progress.completed, progress.total
        )

        return BatchView(
            id=record.id,
            ietf_code=record.ietf_code,
            resource_type=record.resource_type,
            language=record.language,
            created_by=record.created_by,
            details=BatchDetails(
                status=status,
                progress=progress,
                error=record.error,
                errors=errors,
                output=output,
            ),
        )
