"""Pydantic models for batches, queue messages and batch views."""

from datetime import datetime
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WordStatus(IntEnum):
    """Verdict of one model for one word."""

    UNCHECKED = -1
    INCORRECT = 0
    CORRECT = 1
    NAME = 2


FINAL_STATUSES = frozenset({WordStatus.INCORRECT, WordStatus.CORRECT, WordStatus.NAME})


class BatchStatus(str, Enum):
    """Status of a batch as seen by API callers."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETE = "complete"
    ERRORED = "errored"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """Return True if no further progress happens without a new submission."""
        return self in TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: str | None) -> "BatchStatus":
        """Map a wire value to a status, unrecognised values become UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


TERMINAL_STATUSES = frozenset(
    {BatchStatus.COMPLETE, BatchStatus.ERRORED, BatchStatus.TERMINATED, BatchStatus.UNKNOWN}
)


class BatchRequest(BaseModel):
    """Body of a batch submission."""

    language: str
    words: list[str]
    models: list[str]


class WorkItem(BaseModel):
    """Unit of work sent through the queue, one per submission."""

    model_config = ConfigDict(populate_by_name=True)

    batch_id: str = Field(alias="batchId")
    run_id: str | None = Field(default=None, alias="runId")
    language: str
    words: list[str]
    models: list[str]


class QueueMessage(BaseModel):
    """Work item received from SQS together with its receipt handle."""

    item: WorkItem
    message_id: str | None = None
    receipt_handle: str | None = None


class WordResult(BaseModel):
    """One {word, status} pair returned by a model."""

    word: str
    status: int


class ModelResponse(BaseModel):
    """Status recorded by one model for a word."""

    model: str
    status: int


class WordResponse(BaseModel):
    """A word of the batch with the human verdict and all model results."""

    word: str
    correct: bool | None = None
    results: list[ModelResponse] = []


class BatchProgress(BaseModel):
    """Progress of the current run."""

    completed: int
    total: int


class ModelFailure(BaseModel):
    """A failure recorded against a batch during a run."""

    model: str
    message: str


class BatchDetails(BaseModel):
    """Status, progress and output of a batch."""

    status: BatchStatus
    progress: BatchProgress
    error: str | None = None
    errors: list[ModelFailure] = []
    output: list[WordResponse] = []

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, BatchStatus):
            return value
        return BatchStatus.parse(value)


class BatchView(BaseModel):
    """A batch as returned by the API."""

    id: str
    ietf_code: str
    resource_type: str
    language: str
    created_by: str | None = None
    details: BatchDetails


class BatchSummary(BaseModel):
    """Short description of a batch for the dashboard listing."""

    id: str
    ietf_code: str
    resource_type: str
    language: str
    pending: bool
    created_by: str | None = None
    updated_at: datetime | None = None


class BatchRecord(BaseModel):
    """A row of the batches table."""

    id: str
    ietf_code: str
    resource_type: str
    language: str
    pending: bool
    total_pending: int
    error: str | None = None
    run_id: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WordCorrectRequest(BaseModel):
    """Body of a human review update for one word."""

    batch_id: str
    word: str
    correct: bool | None


class ProcessResult(BaseModel):
    """Outcome of processing one work item."""

    batch_id: str
    success: bool
    skipped: bool = False
    models_attempted: int = 0
    updated: int = 0
    errors: list[ModelFailure] = []
