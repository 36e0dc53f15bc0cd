"""Tests for the batch orchestrator."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from word_verifier.exceptions import ConflictError, NotFoundError, QueueError, ValidationError
from word_verifier.infrastructure.database import batches
from word_verifier.models.providers import ModelRegistry
from word_verifier.models.schemas import (
    BatchRequest,
    BatchStatus,
    ModelFailure,
    WordCorrectRequest,
    WorkItem,
)
from word_verifier.services.batch_store import utcnow
from word_verifier.services.orchestrator import BatchOrchestrator


@pytest.fixture
def orchestrator(store, publisher):
    return BatchOrchestrator(store, publisher, ModelRegistry(), pending_timeout_minutes=60)


def _request(words=("abc", "Paul", "xyz"), models=("gpt-4o", "claude-3-5-haiku-latest")):
    return BatchRequest(language="English", words=list(words), models=list(models))


class TestSubmit:
    """Tests for BatchOrchestrator.submit."""

    def test_submit_new_batch(self, orchestrator, store, publisher):
        """Test a first submission creates a pending batch and enqueues it."""
        view = orchestrator.submit("en", "ulb", _request(), created_by="alice")

        assert view.details.status == BatchStatus.QUEUED
        assert view.details.progress.completed == 0
        assert view.details.progress.total == 6
        assert view.details.output == []
        assert view.created_by == "alice"

        record = store.find_batch("en", "ulb")
        assert record.id == view.id
        assert record.pending is True
        assert record.total_pending == 6

        item = publisher.publish_work_item.call_args.args[0]
        assert isinstance(item, WorkItem)
        assert item.batch_id == view.id
        assert item.run_id == record.run_id
        assert item.words == ["abc", "Paul", "xyz"]
        assert item.models == ["gpt-4o", "claude-3-5-haiku-latest"]

    def test_total_pending_is_product(self, orchestrator, store):
        """Test total_pending equals words x models after de-duplication."""
        orchestrator.submit(
            "en", "ulb", _request(words=["a", " a", "b"], models=["o1", "o1", "gpt-4o"])
        )

        record = store.find_batch("en", "ulb")
        assert record.total_pending == 4
        assert store.count_incomplete(record.id, record.run_id) == 4

    def test_submit_while_pending_conflicts(self, orchestrator, store, publisher):
        """Test a second submission while pending fails and changes nothing."""
        orchestrator.submit("en", "ulb", _request())
        before = store.find_batch("en", "ulb")

        with pytest.raises(ConflictError, match="batch in progress"):
            orchestrator.submit("en", "ulb", _request(words=["new"], models=["o1"]))

        after = store.find_batch("en", "ulb")
        assert after.total_pending == before.total_pending
        assert after.run_id == before.run_id
        assert [entry.word for entry in store.fetch_matrix(before.id)] == ["Paul", "abc", "xyz"]
        assert publisher.publish_work_item.call_count == 1

    def test_resubmit_idle_batch(self, orchestrator, store):
        """Test an idle batch is reused, reset and given a new run."""
        first = orchestrator.submit("en", "ulb", _request())
        record = store.find_batch("en", "ulb")
        store.update_model_statuses(record.id, "gpt-4o", {"abc": 1})
        store.finish_run(record.id, record.run_id, [ModelFailure(model="o1", message="x")])

        second = orchestrator.submit("en", "ulb", _request(words=["abc"], models=["gpt-4o"]))

        assert second.id == first.id
        refreshed = store.find_batch("en", "ulb")
        assert refreshed.pending is True
        assert refreshed.total_pending == 1
        assert refreshed.error is None
        assert refreshed.run_id != record.run_id
        assert store.fetch_errors(record.id) == []
        assert store.count_incomplete(record.id, refreshed.run_id) == 1

    def test_resubmit_stuck_batch(self, orchestrator, store, engine):
        """Test a batch pending for longer than the timeout can be resubmitted."""
        orchestrator.submit("en", "ulb", _request())
        with engine.begin() as conn:
            conn.execute(update(batches).values(updated_at=utcnow() - timedelta(hours=2)))

        view = orchestrator.submit("en", "ulb", _request(words=["abc"]))

        assert view.details.progress.total == 2

    @pytest.mark.parametrize(
        "request_kwargs",
        [
            {"language": " ", "words": ["a"], "models": ["o1"]},
            {"language": "English", "words": [], "models": ["o1"]},
            {"language": "English", "words": ["a"], "models": []},
            {"language": "English", "words": ["a", "  "], "models": ["o1"]},
        ],
    )
    def test_validation(self, orchestrator, publisher, store, request_kwargs):
        """Test blank language, empty lists and blank words are rejected."""
        with pytest.raises(ValidationError):
            orchestrator.submit("en", "ulb", BatchRequest(**request_kwargs))

        assert store.find_batch("en", "ulb") is None
        publisher.publish_work_item.assert_not_called()

    def test_unknown_model(self, orchestrator, store):
        """Test unknown models are rejected before anything is written."""
        with pytest.raises(ValidationError, match="unknown models: llama"):
            orchestrator.submit("en", "ulb", _request(models=["gpt-4o", "llama"]))

        assert store.find_batch("en", "ulb") is None

    def test_enqueue_failure_releases_batch(self, orchestrator, store, publisher):
        """Test a failed enqueue leaves the batch idle with the failure recorded."""
        publisher.publish_work_item.side_effect = QueueError("failed to enqueue")

        with pytest.raises(QueueError):
            orchestrator.submit("en", "ulb", _request())

        record = store.find_batch("en", "ulb")
        assert record.pending is False
        assert record.total_pending == 0
        assert store.fetch_errors(record.id) == [
            ModelFailure(model="queue", message="failed to enqueue")
        ]

        # The batch can be submitted again right away
        publisher.publish_work_item.side_effect = None
        view = orchestrator.submit("en", "ulb", _request())
        assert view.details.status == BatchStatus.QUEUED

    def test_enqueue_failure_survives_release_failure(self, orchestrator, store, publisher):
        """Test the QueueError still surfaces when the batch cannot be released."""
        publisher.publish_work_item.side_effect = QueueError("failed to enqueue")

        with patch.object(
            store, "finish_run", side_effect=OperationalError("UPDATE", {}, Exception("db down"))
        ):
            with pytest.raises(QueueError, match="failed to enqueue"):
                orchestrator.submit("en", "ulb", _request())

        assert store.find_batch("en", "ulb").pending is True

    def test_qualified_and_bare_model_ids_are_one_model(self, orchestrator, store, publisher):
        """Test provider-qualified ids are de-duplicated against bare ids."""
        view = orchestrator.submit(
            "en", "ulb", _request(words=["a", "b"], models=["gpt-4o", "openai/gpt-4o", " o1 "])
        )

        assert view.details.progress.total == 4
        assert store.find_batch("en", "ulb").total_pending == 4
        assert publisher.publish_work_item.call_args.args[0].models == ["gpt-4o", "o1"]

    def test_only_blank_models(self, orchestrator, store):
        """Test a model list of blanks is rejected."""
        with pytest.raises(ValidationError, match="models must not be empty"):
            orchestrator.submit("en", "ulb", _request(models=["  "]))

        assert store.find_batch("en", "ulb") is None


class TestCrud:
    """Tests for delete, listing and review updates."""

    def test_delete(self, orchestrator, store):
        """Test deleting an existing batch."""
        orchestrator.submit("en", "ulb", _request())

        assert orchestrator.delete("en", "ulb") is True
        assert store.find_batch("en", "ulb") is None

    def test_delete_missing(self, orchestrator):
        """Test deleting an unknown job key raises NotFoundError."""
        with pytest.raises(NotFoundError):
            orchestrator.delete("en", "ulb")

    def test_set_word_correct(self, orchestrator, store):
        """Test the review flag is stored for an existing word."""
        view = orchestrator.submit("en", "ulb", _request())

        assert orchestrator.set_word_correct(
            WordCorrectRequest(batch_id=view.id, word="Paul", correct=True)
        )
        correct = {entry.word: entry.correct for entry in store.fetch_matrix(view.id)}
        assert correct["Paul"] is True

    def test_set_word_correct_missing(self, orchestrator):
        """Test unknown batches and words raise NotFoundError."""
        view = orchestrator.submit("en", "ulb", _request())

        with pytest.raises(NotFoundError):
            orchestrator.set_word_correct(WordCorrectRequest(batch_id="nope", word="a", correct=True))
        with pytest.raises(NotFoundError):
            orchestrator.set_word_correct(WordCorrectRequest(batch_id=view.id, word="zz", correct=None))

    def test_list_with_results(self, orchestrator, store):
        """Test listing delegates to the store."""
        view = orchestrator.submit("en", "ulb", _request())
        record = store.find_batch("en", "ulb")
        store.update_model_statuses(view.id, "gpt-4o", {"abc": 2}, run_id=record.run_id)

        assert [summary.id for summary in orchestrator.list_with_results()] == [view.id]
