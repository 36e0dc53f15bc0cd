"""Tests for the result matrix store."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from word_verifier.exceptions import ConflictError
from word_verifier.infrastructure.database import model_results, words
from word_verifier.models.schemas import ModelFailure
from word_verifier.services.batch_store import utcnow


def _create(store, words_list=("a", "b"), models=("gpt-4o",), run_id="run-1", ietf="en", rt="ulb"):
    with store.begin() as conn:
        batch_id = store.create_batch(
            conn,
            ietf_code=ietf,
            resource_type=rt,
            language="English",
            total_pending=len(words_list) * len(models),
            run_id=run_id,
            created_by="alice",
        )
        store.seed_matrix(conn, batch_id, list(words_list), list(models), run_id)
    return batch_id


def _statuses(store, batch_id) -> dict[tuple[str, str], int]:
    return {
        (entry.word, result.model): result.status
        for entry in store.fetch_matrix(batch_id)
        for result in entry.results
    }


class TestBatches:
    """Tests for batch rows."""

    def test_create_and_find(self, store):
        """Test a created batch is pending and found by its job key."""
        batch_id = _create(store)

        record = store.find_batch("en", "ulb")

        assert record.id == batch_id
        assert record.pending is True
        assert record.total_pending == 2
        assert record.run_id == "run-1"
        assert record.created_by == "alice"
        assert store.get_batch(batch_id) == record

    def test_find_missing(self, store):
        """Test unknown job keys return None."""
        assert store.find_batch("fr", "ulb") is None
        assert store.get_batch("missing") is None

    def test_create_duplicate_job_key(self, store):
        """Test a second batch for the same job key is a conflict."""
        _create(store)

        with pytest.raises(ConflictError):
            _create(store, run_id="run-2")

    def test_claim_pending_batch_fails(self, store):
        """Test a pending batch cannot be claimed."""
        batch_id = _create(store)

        with store.begin() as conn:
            claimed = store.claim_batch(conn, batch_id, "English", 10, "run-2")

        assert claimed is False
        record = store.get_batch(batch_id)
        assert record.total_pending == 2
        assert record.run_id == "run-1"

    def test_claim_idle_batch(self, store):
        """Test an idle batch is claimed and its previous errors cleared."""
        batch_id = _create(store)
        store.finish_run(batch_id, "run-1", [ModelFailure(model="o1", message="boom")])

        with store.begin() as conn:
            claimed = store.claim_batch(conn, batch_id, "Anglais", 6, "run-2")

        assert claimed is True
        record = store.get_batch(batch_id)
        assert record.pending is True
        assert record.total_pending == 6
        assert record.language == "Anglais"
        assert record.error is None
        assert record.run_id == "run-2"
        assert store.fetch_errors(batch_id) == []

    def test_claim_stale_pending_batch(self, store):
        """Test a pending batch older than the stale cutoff can be reclaimed."""
        batch_id = _create(store)

        with store.begin() as conn:
            claimed = store.claim_batch(
                conn, batch_id, "English", 2, "run-2", stale_before=utcnow() + timedelta(minutes=1)
            )

        assert claimed is True
        assert store.get_batch(batch_id).run_id == "run-2"

    def test_finish_run_records_failures(self, store):
        """Test finishing a run clears pending and keeps every failure in order."""
        batch_id = _create(store)
        failures = [
            ModelFailure(model="o1", message="first"),
            ModelFailure(model="gpt-4o", message="second"),
        ]

        assert store.finish_run(batch_id, "run-1", failures) is True

        record = store.get_batch(batch_id)
        assert record.pending is False
        assert record.total_pending == 0
        assert record.error == "second"
        assert store.fetch_errors(batch_id) == failures

    def test_finish_run_wrong_run(self, store):
        """Test a stale run cannot finish a batch owned by a newer run."""
        batch_id = _create(store)

        assert store.finish_run(batch_id, "run-0", [ModelFailure(model="o1", message="x")]) is False

        record = store.get_batch(batch_id)
        assert record.pending is True
        assert store.fetch_errors(batch_id) == []

    def test_delete_batch_cascades(self, store, engine):
        """Test deleting a batch removes its words and results."""
        batch_id = _create(store)
        store.finish_run(batch_id, "run-1", [ModelFailure(model="o1", message="x")])

        assert store.delete_batch(batch_id) is True

        assert store.get_batch(batch_id) is None
        with engine.connect() as conn:
            assert conn.execute(select(words)).all() == []
            assert conn.execute(select(model_results)).all() == []
        assert store.fetch_errors(batch_id) == []
        assert store.delete_batch(batch_id) is False

    def test_list_batches_with_results(self, store):
        """Test only batches with a recorded result are listed."""
        with_results = _create(store, ietf="en")
        _create(store, ietf="fr")
        store.update_model_statuses(with_results, "gpt-4o", {"a": 1})

        listed = store.list_batches_with_results()

        assert [summary.id for summary in listed] == [with_results]
        assert listed[0].ietf_code == "en"


class TestResultMatrix:
    """Tests for words and model results."""

    def test_seed_writes_cartesian_product(self, store):
        """Test seeding writes len(words) * len(models) unchecked rows across chunks."""
        word_list = [f"w{i}" for i in range(7)]
        models = ["gpt-4o", "o1"]

        batch_id = _create(store, words_list=word_list, models=models)

        statuses = _statuses(store, batch_id)
        assert len(statuses) == 14
        assert set(statuses.values()) == {-1}
        assert store.count_incomplete(batch_id, "run-1") == 14

    def test_reseed_resets_overlap_and_keeps_old_words(self, store):
        """Test a reseed resets requested pairs and leaves other words alone."""
        batch_id = _create(store, words_list=["a", "b"])
        store.update_model_statuses(batch_id, "gpt-4o", {"a": 1, "b": 0})
        store.finish_run(batch_id, "run-1", [])
        store.set_word_correct(batch_id, "a", True)

        with store.begin() as conn:
            assert store.claim_batch(conn, batch_id, "English", 2, "run-2")
            store.seed_matrix(conn, batch_id, ["a", "c"], ["gpt-4o"], "run-2")

        statuses = _statuses(store, batch_id)
        assert statuses == {("a", "gpt-4o"): -1, ("b", "gpt-4o"): 0, ("c", "gpt-4o"): -1}
        assert store.count_incomplete(batch_id, "run-2") == 2
        correct = {entry.word: entry.correct for entry in store.fetch_matrix(batch_id)}
        assert correct["a"] is True

    def test_update_model_statuses(self, store):
        """Test statuses are written per word for one model only."""
        batch_id = _create(store, words_list=["a", "b", "c", "d"], models=["gpt-4o", "o1"])

        updated = store.update_model_statuses(
            batch_id, "o1", {"a": 0, "b": 1, "c": 2, "d": 1}, run_id="run-1"
        )

        assert updated == 4
        statuses = _statuses(store, batch_id)
        assert statuses[("a", "o1")] == 0
        assert statuses[("c", "o1")] == 2
        assert statuses[("a", "gpt-4o")] == -1
        assert store.count_incomplete(batch_id, "run-1") == 4

    def test_update_model_statuses_other_run(self, store):
        """Test rows of another run are not touched."""
        batch_id = _create(store)

        updated = store.update_model_statuses(batch_id, "gpt-4o", {"a": 1}, run_id="run-0")

        assert updated == 0
        assert _statuses(store, batch_id)[("a", "gpt-4o")] == -1

    def test_update_model_statuses_empty(self, store):
        """Test an empty mapping writes nothing."""
        batch_id = _create(store)

        assert store.update_model_statuses(batch_id, "gpt-4o", {}) == 0

    def test_fetch_matrix_ordered(self, store):
        """Test output is grouped by word and ordered by word then model."""
        batch_id = _create(store, words_list=["b", "a"], models=["o1", "gpt-4o"])

        output = store.fetch_matrix(batch_id)

        assert [entry.word for entry in output] == ["a", "b"]
        assert [result.model for result in output[0].results] == ["gpt-4o", "o1"]

    def test_set_word_correct(self, store):
        """Test the review flag is stored and unknown words report False."""
        batch_id = _create(store)

        assert store.set_word_correct(batch_id, "b", False) is True
        assert store.set_word_correct(batch_id, "zzz", True) is False

        correct = {entry.word: entry.correct for entry in store.fetch_matrix(batch_id)}
        assert correct == {"a": None, "b": False}
