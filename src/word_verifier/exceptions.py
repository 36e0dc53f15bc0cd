"""Exception hierarchy for the word verifier.

Submission-time and query-time errors carry the HTTP status the API
returns for them. Per-model errors raised during a verification run are
caught by the worker and recorded on the batch instead of propagating.
"""


class WordVerifierError(Exception):
    """Base class for all word verifier errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WordVerifierError):
    """Bad submission input."""

    status_code = 400


class NotFoundError(WordVerifierError):
    """No batch (or word) exists for the given key."""

    status_code = 404


class ConflictError(WordVerifierError):
    """A batch for the job key is already in flight."""

    status_code = 409


class QueueError(WordVerifierError):
    """The work item could not be enqueued after the batch was seeded."""

    status_code = 503


class InvalidModelError(WordVerifierError):
    """The model identifier is not in the provider registry."""

    status_code = 400


class ProviderError(WordVerifierError):
    """A single provider call failed at the transport level."""

    def __init__(self, model: str, message: str):
        super().__init__(f'Model "{model}" failed: {message}')
        self.model = model


class ParseError(WordVerifierError):
    """A provider response could not be reduced to {word, status} pairs."""

    def __init__(self, model: str, message: str):
        super().__init__(f'Model "{model}" returned an unusable response: {message}')
        self.model = model


class AttributionError(WordVerifierError):
    """A provider returned a result that cannot be attributed to a requested word."""

    def __init__(self, model: str, word: str, status: int | None = None):
        if status is None:
            message = (
                f'Model "{model}" returned a result for word "{word}" '
                "which is not in the allowed word list."
            )
        else:
            message = f'Model "{model}" returned invalid status {status} for word "{word}".'
        super().__init__(message)
        self.model = model
        self.word = word
        self.status = status


class ApiError(WordVerifierError):
    """The verification API returned an unexpected response to the client."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code
