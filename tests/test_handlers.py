"""Tests for handlers layer."""

import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from word_verifier.exceptions import InvalidModelError, ProviderError
from word_verifier.handlers.verification import (
    collect_statuses,
    process_message,
    run_worker_loop,
)
from word_verifier.models.providers import ModelRegistry
from word_verifier.models.schemas import (
    BatchRequest,
    ModelFailure,
    QueueMessage,
    WordResult,
    WorkItem,
)
from word_verifier.services.ai_gateway import AIGatewayClient
from word_verifier.services.batch_store import BatchStore
from word_verifier.services.orchestrator import BatchOrchestrator
from word_verifier.services.progress import ProgressAggregator
from word_verifier.services.response_parser import ParseOutcome, ParseResult
from word_verifier.services.sqs_receiver import SQSReceiver


def _ok(*pairs) -> ParseResult:
    return ParseResult(
        outcome=ParseOutcome.SUCCESS,
        results=[WordResult(word=word, status=status) for word, status in pairs],
    )


def _gateway(responses: dict) -> MagicMock:
    """Gateway mock answering per model; exceptions in the map are raised."""
    gateway = MagicMock(spec=AIGatewayClient)
    gateway.build_prompt.side_effect = AIGatewayClient.build_prompt

    def chat(model, prompt):
        response = responses[model]
        if isinstance(response, Exception):
            raise response
        return response

    gateway.chat.side_effect = chat
    return gateway


@pytest.fixture
def submit(store, publisher):
    """Submit a batch and return the work item that was enqueued."""

    def _submit(words=("abc", "Paul"), models=("gpt-4o", "o1")) -> WorkItem:
        orchestrator = BatchOrchestrator(store, publisher, ModelRegistry())
        orchestrator.submit(
            "en",
            "ulb",
            BatchRequest(language="English", words=list(words), models=list(models)),
        )
        return publisher.publish_work_item.call_args.args[0]

    return _submit


class TestCollectStatuses:
    """Tests for collect_statuses."""

    def test_filters_unknown_words_and_statuses(self):
        """Test only submitted words with a final status are kept."""
        parsed = _ok(("abc", 1), (" Paul ", 2), ("zzz", 0), ("abc2", 1), ("xyz", 7))

        statuses, failures = collect_statuses("o1", parsed, {"abc", "Paul", "xyz"})

        assert statuses == {"abc": 1, "Paul": 2}
        assert [f.message for f in failures] == [
            'Model "o1" returned a result for word "zzz" which is not in the allowed word list.',
            'Model "o1" returned a result for word "abc2" which is not in the allowed word list.',
            'Model "o1" returned invalid status 7 for word "xyz".',
        ]


class TestProcessMessage:
    """Tests for process_message handler."""

    def test_process_message_success(self, store, submit):
        """Test every model's answers are stored and the batch completes."""
        item = submit()
        gateway = _gateway(
            {
                "gpt-4o": _ok(("abc", 0), ("Paul", 2)),
                "o1": _ok(("abc", 1), ("Paul", 2)),
            }
        )

        result = process_message(item=item, store=store, gateway=gateway)

        assert result.success is True
        assert result.updated == 4
        assert result.models_attempted == 2
        assert [call.args[0] for call in gateway.chat.call_args_list] == ["gpt-4o", "o1"]

        view = ProgressAggregator(store).get_batch("en", "ulb")
        assert view.details.status.value == "complete"
        assert view.details.error is None
        assert all(r.status in (0, 1, 2) for e in view.details.output for r in e.results)
        record = store.get_batch(item.batch_id)
        assert record.pending is False
        assert record.total_pending == 0

    def test_process_message_records_every_failure(self, store, submit):
        """Test provider, parse and attribution failures are all recorded in order."""
        item = submit(models=("gpt-4o", "o1", "claude-3-5-haiku-latest"))
        gateway = _gateway(
            {
                "gpt-4o": ProviderError("gpt-4o", "HTTP 500"),
                "o1": ParseResult.malformed("no JSON array found in response"),
                "claude-3-5-haiku-latest": _ok(("abc", 1), ("Paul", 2), ("ghost", 1)),
            }
        )

        result = process_message(item=item, store=store, gateway=gateway)

        assert result.success is False
        assert result.updated == 2
        assert [f.model for f in result.errors] == ["gpt-4o", "o1", "claude-3-5-haiku-latest"]

        errors = store.fetch_errors(item.batch_id)
        assert errors == result.errors
        record = store.get_batch(item.batch_id)
        assert record.pending is False
        assert record.error == errors[-1].message
        assert "ghost" in record.error

        view = ProgressAggregator(store).get_batch("en", "ulb")
        assert view.details.status.value == "errored"
        statuses = {(e.word, r.model): r.status for e in view.details.output for r in e.results}
        assert statuses[("abc", "claude-3-5-haiku-latest")] == 1
        assert statuses[("abc", "gpt-4o")] == -1

    def test_empty_response_is_failure(self, store, submit):
        """Test an empty parse result is recorded as a failure for that model."""
        item = submit(models=("gpt-4o",))
        gateway = _gateway({"gpt-4o": ParseResult.empty("response array is empty")})

        result = process_message(item=item, store=store, gateway=gateway)

        assert result.errors == [
            ModelFailure(
                model="gpt-4o",
                message='Model "gpt-4o" returned an unusable response: response array is empty',
            )
        ]

    def test_invalid_and_unexpected_errors(self, store, submit):
        """Test invalid models and unexpected exceptions do not stop the run."""
        item = submit(models=("gpt-4o", "o1"))
        gateway = _gateway(
            {
                "gpt-4o": InvalidModelError('Model "gpt-4o" is invalid'),
                "o1": RuntimeError("socket closed"),
            }
        )

        result = process_message(item=item, store=store, gateway=gateway)

        assert [f.message for f in result.errors] == [
            'Model "gpt-4o" is invalid',
            'Model "o1" failed: socket closed',
        ]
        assert store.get_batch(item.batch_id).pending is False

    def test_skips_deleted_batch(self, store, submit):
        """Test items for deleted batches are skipped."""
        item = submit()
        store.delete_batch(item.batch_id)
        gateway = _gateway({})

        result = process_message(item=item, store=store, gateway=gateway)

        assert result.skipped is True
        gateway.chat.assert_not_called()

    def test_skips_stale_run(self, store, submit):
        """Test items from an earlier run are skipped."""
        item = submit()
        stale = item.model_copy(update={"run_id": "older-run"})
        gateway = _gateway({})

        result = process_message(item=stale, store=store, gateway=gateway)

        assert result.skipped is True
        assert store.get_batch(item.batch_id).pending is True
        gateway.chat.assert_not_called()

    def test_skips_finished_batch(self, store, submit):
        """Test a redelivered item for a finished run is skipped."""
        item = submit(models=("gpt-4o",))
        gateway = _gateway({"gpt-4o": _ok(("abc", 1), ("Paul", 2))})
        process_message(item=item, store=store, gateway=gateway)

        again = process_message(item=item, store=store, gateway=gateway)

        assert again.skipped is True
        assert gateway.chat.call_count == 1

    def test_store_failure_is_logged(self, submit):
        """Test a store failure returns an unsuccessful result instead of raising."""
        item = submit()
        store = MagicMock(spec=BatchStore)
        store.get_batch.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        result = process_message(item=item, store=store, gateway=_gateway({}))

        assert result.success is False
        store.finish_run.assert_not_called()


class TestRunWorkerLoop:
    """Tests for run_worker_loop."""

    def test_always_deletes_messages(self):
        """Test every message is deleted, whatever the outcome."""
        item = WorkItem(batch_id="b1", run_id="r1", language="en", words=["a"], models=["o1"])
        message = QueueMessage(item=item, message_id="m1", receipt_handle="rh1")
        stop = threading.Event()

        receiver = MagicMock(spec=SQSReceiver)

        def receive(**kwargs):
            if receiver.receive_messages.call_count == 1:
                return [message]
            stop.set()
            return []

        receiver.receive_messages.side_effect = receive
        store = MagicMock(spec=BatchStore)
        store.get_batch.return_value = None

        run_worker_loop(receiver, store, _gateway({}), stop_event=stop)

        receiver.delete_message.assert_called_once_with(message)
