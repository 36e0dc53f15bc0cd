"""Result matrix store: batches, words and per-(word, model) results."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Connection,
    and_,
    case,
    delete,
    exists,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from word_verifier.exceptions import ConflictError
from word_verifier.infrastructure.database import (
    batch_errors,
    batches,
    dialect_insert,
    model_results,
    words,
)
from word_verifier.models.schemas import (
    BatchRecord,
    BatchSummary,
    ModelFailure,
    ModelResponse,
    WordResponse,
    WordStatus,
)
from word_verifier.utils.chunking import chunked

logger = logging.getLogger(__name__)

SQL_BATCH_LIMIT = 500


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BatchStore:
    """Durable storage for batches, words and model results."""

    def __init__(self, engine: Engine, sql_batch_limit: int = SQL_BATCH_LIMIT):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine.
            sql_batch_limit: Maximum rows written by one bulk statement.
        """
        self._engine = engine
        self._limit = sql_batch_limit

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def sql_batch_limit(self) -> int:
        return self._limit

    def begin(self):
        """Open a transaction; commits on exit, rolls back on error."""
        return self._engine.begin()

    # Batches

    def find_batch(
        self,
        ietf_code: str,
        resource_type: str,
        conn: Connection | None = None,
    ) -> BatchRecord | None:
        """Get the batch for a job key, or None."""
        query = select(batches).where(
            batches.c.ietf_code == ietf_code,
            batches.c.resource_type == resource_type,
        )
        if conn is not None:
            row = conn.execute(query).mappings().first()
        else:
            with self._engine.connect() as c:
                row = c.execute(query).mappings().first()
        return BatchRecord(**row) if row else None

    def get_batch(self, batch_id: str) -> BatchRecord | None:
        """Get a batch by id, or None."""
        with self._engine.connect() as conn:
            row = conn.execute(
                select(batches).where(batches.c.id == batch_id)
            ).mappings().first()
        return BatchRecord(**row) if row else None

    def create_batch(
        self,
        conn: Connection,
        ietf_code: str,
        resource_type: str,
        language: str,
        total_pending: int,
        run_id: str,
        created_by: str | None = None,
    ) -> str:
        """
        Insert a new pending batch.

        Returns:
            The generated batch id.

        Raises:
            ConflictError: If another submission created the batch first.
        """
        batch_id = str(uuid.uuid4())
        now = utcnow()
        try:
            conn.execute(
                insert(batches).values(
                    id=batch_id,
                    ietf_code=ietf_code,
                    resource_type=resource_type,
                    language=language,
                    pending=True,
                    total_pending=total_pending,
                    error=None,
                    run_id=run_id,
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
        except IntegrityError as e:
            raise ConflictError("batch in progress") from e

        logger.info("Created batch %s for %s/%s", batch_id, ietf_code, resource_type)
        return batch_id

    def claim_batch(
        self,
        conn: Connection,
        batch_id: str,
        language: str,
        total_pending: int,
        run_id: str,
        stale_before: datetime | None = None,
    ) -> bool:
        """
        Atomically mark an idle (or stuck) batch as pending for a new run.

        Args:
            conn: Connection inside the submission transaction.
            batch_id: Batch to claim.
            language: Language of the new run.
            total_pending: Size of the new run's matrix.
            run_id: Identity of the new run.
            stale_before: Pending batches last updated before this are reclaimable.

        Returns:
            True if the batch was claimed, False if a run is in flight.
        """
        admissible = batches.c.pending.is_(False)
        if stale_before is not None:
            admissible = or_(admissible, batches.c.updated_at < stale_before)

        result = conn.execute(
            update(batches)
            .where(batches.c.id == batch_id, admissible)
            .values(
                pending=True,
                language=language,
                total_pending=total_pending,
                error=None,
                run_id=run_id,
                updated_at=utcnow(),
            )
        )
        if result.rowcount != 1:
            return False

        conn.execute(delete(batch_errors).where(batch_errors.c.batch_id == batch_id))
        return True

    def finish_run(
        self,
        batch_id: str,
        run_id: str | None,
        failures: list[ModelFailure],
    ) -> bool:
        """
        Close a run: clear pending, zero the counter and store its failures.

        Args:
            batch_id: Batch being finished.
            run_id: Run being finished; None matches any run.
            failures: Ordered failures of the run.

        Returns:
            True if the batch was updated, False if it is gone or a newer run owns it.
        """
        with self._engine.begin() as conn:
            query = update(batches).where(batches.c.id == batch_id)
            if run_id is not None:
                query = query.where(batches.c.run_id == run_id)

            result = conn.execute(
                query.values(
                    pending=False,
                    total_pending=0,
                    error=failures[-1].message if failures else None,
                    updated_at=utcnow(),
                )
            )
            if result.rowcount != 1:
                return False

            conn.execute(delete(batch_errors).where(batch_errors.c.batch_id == batch_id))
            if failures:
                now = utcnow()
                conn.execute(
                    insert(batch_errors),
                    [
                        {
                            "batch_id": batch_id,
                            "model": failure.model,
                            "message": failure.message,
                            "created_at": now,
                        }
                        for failure in failures
                    ],
                )
        return True

    def delete_batch(self, batch_id: str) -> bool:
        """Delete a batch with all of its words, results and errors."""
        with self._engine.begin() as conn:
            word_ids = select(words.c.id).where(words.c.batch_id == batch_id)
            conn.execute(delete(model_results).where(model_results.c.word_id.in_(word_ids)))
            conn.execute(delete(words).where(words.c.batch_id == batch_id))
            conn.execute(delete(batch_errors).where(batch_errors.c.batch_id == batch_id))
            result = conn.execute(delete(batches).where(batches.c.id == batch_id))
        return result.rowcount == 1

    def list_batches_with_results(self) -> list[BatchSummary]:
        """Batches that have at least one model result recorded."""
        has_result = exists(
            select(model_results.c.id)
            .join(words, words.c.id == model_results.c.word_id)
            .where(
                words.c.batch_id == batches.c.id,
                model_results.c.status >= 0,
            )
        )
        query = (
            select(
                batches.c.id,
                batches.c.ietf_code,
                batches.c.resource_type,
                batches.c.language,
                batches.c.pending,
                batches.c.created_by,
                batches.c.updated_at,
            )
            .where(has_result)
            .order_by(batches.c.updated_at.desc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        return [BatchSummary(**row) for row in rows]

    # Result matrix

    def upsert_words(self, conn: Connection, batch_id: str, word_list: list[str]) -> int:
        """
        Insert words for a batch; existing rows (and their review flag) are kept.

        Returns:
            Number of rows sent to the database.
        """
        written = 0
        for chunk in chunked(word_list, self._limit):
            stmt = dialect_insert(conn, words).values(
                [{"word": word, "batch_id": batch_id, "created_at": utcnow()} for word in chunk]
            )
            conn.execute(
                stmt.on_conflict_do_nothing(index_elements=[words.c.word, words.c.batch_id])
            )
            written += len(chunk)
        return written

    def fetch_word_ids(
        self,
        conn: Connection,
        batch_id: str,
        word_list: list[str],
    ) -> dict[str, int]:
        """Map word text to word id for the given words of a batch."""
        ids: dict[str, int] = {}
        for chunk in chunked(word_list, self._limit):
            rows = conn.execute(
                select(words.c.word, words.c.id).where(
                    words.c.batch_id == batch_id,
                    words.c.word.in_(chunk),
                )
            ).all()
            ids.update({row.word: row.id for row in rows})
        return ids

    def upsert_model_results(
        self,
        conn: Connection,
        word_ids: list[int],
        models: list[str],
        run_id: str,
    ) -> int:
        """
        Reset every (model, word) pair to unchecked for the given run.

        Returns:
            Number of rows sent to the database.
        """
        rows = [
            {
                "model": model,
                "status": int(WordStatus.UNCHECKED),
                "word_id": word_id,
                "run_id": run_id,
                "created_at": utcnow(),
            }
            for word_id in word_ids
            for model in models
        ]

        for chunk in chunked(rows, self._limit):
            stmt = dialect_insert(conn, model_results).values(chunk)
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=[model_results.c.model, model_results.c.word_id],
                    set_={
                        "status": stmt.excluded.status,
                        "run_id": stmt.excluded.run_id,
                    },
                )
            )
        return len(rows)

    def seed_matrix(
        self,
        conn: Connection,
        batch_id: str,
        word_list: list[str],
        models: list[str],
        run_id: str,
    ) -> int:
        """
        Upsert the words and recreate the models x words matrix as unchecked.

        Returns:
            Number of matrix rows written.
        """
        self.upsert_words(conn, batch_id, word_list)
        ids = self.fetch_word_ids(conn, batch_id, word_list)
        word_ids = [ids[word] for word in word_list if word in ids]
        written = self.upsert_model_results(conn, word_ids, models, run_id)
        logger.info(
            "Seeded batch %s: %d words x %d models = %d results",
            batch_id,
            len(word_ids),
            len(models),
            written,
        )
        return written

    def update_model_statuses(
        self,
        batch_id: str,
        model: str,
        statuses: dict[str, int],
        run_id: str | None = None,
    ) -> int:
        """
        Write one model's statuses for many words of a batch.

        One UPDATE per chunk, selecting the new status by word text.

        Args:
            batch_id: Batch the words belong to.
            model: Model whose rows are updated.
            statuses: Mapping of word text to status.
            run_id: When given, only rows seeded for this run are touched.

        Returns:
            Number of rows updated.
        """
        if not statuses:
            return 0

        updated = 0
        with self._engine.begin() as conn:
            for chunk in chunked(list(statuses.items()), self._limit):
                mapping = dict(chunk)
                word_ids = select(words.c.id).where(
                    words.c.batch_id == batch_id,
                    words.c.word.in_(list(mapping)),
                )
                word_text = (
                    select(words.c.word)
                    .where(words.c.id == model_results.c.word_id)
                    .scalar_subquery()
                )
                query = update(model_results).where(
                    model_results.c.model == model,
                    model_results.c.word_id.in_(word_ids),
                )
                if run_id is not None:
                    query = query.where(model_results.c.run_id == run_id)

                result = conn.execute(
                    query.values(
                        status=case(mapping, value=word_text, else_=model_results.c.status)
                    )
                )
                updated += result.rowcount
        return updated

    def count_incomplete(self, batch_id: str, run_id: str | None) -> int:
        """Count unchecked results of the batch's current run."""
        conditions = [words.c.batch_id == batch_id, model_results.c.status < 0]
        if run_id is not None:
            conditions.append(model_results.c.run_id == run_id)

        query = (
            select(func.count(model_results.c.id))
            .select_from(model_results.join(words, words.c.id == model_results.c.word_id))
            .where(and_(*conditions))
        )
        with self._engine.connect() as conn:
            return conn.execute(query).scalar_one()

    def fetch_matrix(self, batch_id: str) -> list[WordResponse]:
        """Read every word of the batch with its model results, ordered by word."""
        query = (
            select(
                words.c.word,
                words.c.correct,
                model_results.c.model,
                model_results.c.status,
            )
            .select_from(
                words.outerjoin(model_results, model_results.c.word_id == words.c.id)
            )
            .where(words.c.batch_id == batch_id)
            .order_by(words.c.word, model_results.c.model)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).all()

        output: dict[str, WordResponse] = {}
        for row in rows:
            entry = output.get(row.word)
            if entry is None:
                entry = WordResponse(word=row.word, correct=row.correct, results=[])
                output[row.word] = entry
            if row.model is not None:
                entry.results.append(ModelResponse(model=row.model, status=row.status))
        return list(output.values())

    def fetch_errors(self, batch_id: str) -> list[ModelFailure]:
        """Failures recorded by the batch's last run, oldest first."""
        query = (
            select(batch_errors.c.model, batch_errors.c.message)
            .where(batch_errors.c.batch_id == batch_id)
            .order_by(batch_errors.c.id)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query).all()
        return [ModelFailure(model=row.model, message=row.message) for row in rows]

    def set_word_correct(self, batch_id: str, word: str, correct: bool | None) -> bool:
        """Store the human review verdict for one word."""
        with self._engine.begin() as conn:
            result = conn.execute(
                update(words)
                .where(words.c.batch_id == batch_id, words.c.word == word)
                .values(correct=correct)
            )
        return result.rowcount == 1
