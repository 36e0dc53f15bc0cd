"""HTTP routing for the batch API (API Gateway proxy events)."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from word_verifier.exceptions import NotFoundError, ValidationError, WordVerifierError
from word_verifier.models.providers import ModelRegistry
from word_verifier.models.schemas import BatchRequest, WordCorrectRequest
from word_verifier.services.orchestrator import BatchOrchestrator
from word_verifier.services.progress import ProgressAggregator

logger = logging.getLogger(__name__)

BATCH_PATH = re.compile(r"^/api/batch/(?P<ietf_code>[^/]+)/(?P<resource_type>[^/]+)/?$")
BATCHES_PATH = "/api/batches"
WORD_PATH = "/api/word"
MODELS_PATH = "/api/models"


@dataclass
class ApiRequest:
    """The parts of an API Gateway event the router needs."""

    method: str
    path: str
    body: str | None = None
    username: str | None = None


def _authorizer_username(request_context: dict) -> str | None:
    authorizer = request_context.get("authorizer") or {}
    # REST v1 custom authorizer, Cognito claims, HTTP v2 JWT and Lambda authorizers
    candidates = (
        authorizer.get("username"),
        (authorizer.get("claims") or {}).get("username"),
        ((authorizer.get("jwt") or {}).get("claims") or {}).get("username"),
        (authorizer.get("lambda") or {}).get("username"),
    )
    return next((value for value in candidates if value), None)


def parse_event(event: dict) -> ApiRequest:
    """
    Read method, path, body and caller from a REST (v1) or HTTP (v2) event.

    Args:
        event: API Gateway proxy event.

    Returns:
        ApiRequest.
    """
    request_context = event.get("requestContext") or {}
    http = request_context.get("http") or {}

    method = (event.get("httpMethod") or http.get("method") or "GET").upper()
    path = event.get("rawPath") or event.get("path") or http.get("path") or "/"

    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")

    return ApiRequest(
        method=method,
        path=path,
        body=body,
        username=_authorizer_username(request_context),
    )


def json_response(status_code: int, payload) -> dict:
    """Build a Lambda proxy response with a JSON body."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        payload = [
            item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            for item in payload
        ]

    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def error_response(error: WordVerifierError) -> dict:
    return json_response(error.status_code, {"error": error.message})


def _parse_body(body: str | None, model: type[BaseModel]):
    try:
        data = json.loads(body or "")
    except json.JSONDecodeError:
        raise ValidationError("malformed JSON body") from None

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid request body: {e.error_count()} error(s)") from e


class ApiRouter:
    """Dispatches API requests to the batch services."""

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        aggregator: ProgressAggregator,
        registry: ModelRegistry,
    ):
        self._orchestrator = orchestrator
        self._aggregator = aggregator
        self._registry = registry

    def handle(self, request: ApiRequest) -> dict:
        """
        Route one request and turn service errors into JSON error responses.

        Args:
            request: Parsed API request.

        Returns:
            Lambda proxy response dict.
        """
        logger.info("%s %s", request.method, request.path)
        try:
            return self._dispatch(request)
        except WordVerifierError as e:
            logger.warning("%s %s failed (%d): %s", request.method, request.path, e.status_code, e)
            return error_response(e)

    def _dispatch(self, request: ApiRequest) -> dict:
        match = BATCH_PATH.match(request.path)
        if match:
            ietf_code = unquote(match.group("ietf_code"))
            resource_type = unquote(match.group("resource_type"))

            if request.method == "POST":
                batch_request = _parse_body(request.body, BatchRequest)
                view = self._orchestrator.submit(
                    ietf_code, resource_type, batch_request, created_by=request.username
                )
                return json_response(200, view)

            if request.method == "GET":
                return json_response(200, self._aggregator.get_batch(ietf_code, resource_type))

            if request.method == "DELETE":
                return json_response(200, self._orchestrator.delete(ietf_code, resource_type))

        elif request.path.rstrip("/") == BATCHES_PATH and request.method == "GET":
            return json_response(200, self._orchestrator.list_with_results())

        elif request.path.rstrip("/") == WORD_PATH and request.method == "PUT":
            word_request = _parse_body(request.body, WordCorrectRequest)
            return json_response(200, self._orchestrator.set_word_correct(word_request))

        elif request.path.rstrip("/") == MODELS_PATH and request.method == "GET":
            return json_response(200, self._registry.as_dict())

        raise NotFoundError(f"no route for {request.method} {request.path}")
