"""HTTP client for the batch API."""

import logging
from urllib.parse import quote

import httpx

from word_verifier.config import config
from word_verifier.exceptions import (
    ApiError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from word_verifier.models.schemas import (
    BatchRequest,
    BatchSummary,
    BatchView,
    WordCorrectRequest,
)

logger = logging.getLogger(__name__)

ERRORS_BY_STATUS = {
    400: ValidationError,
    404: NotFoundError,
    409: ConflictError,
}


class WatApiClient:
    """Talks to the batch API on behalf of a signed-in user."""

    def __init__(
        self,
        client: httpx.Client,
        base_url: str | None = None,
        access_token: str | None = None,
    ):
        """
        Initialize the API client.

        Args:
            client: httpx client (owns the timeout).
            base_url: API root, e.g. "https://wat.example.org"; WAT_API_URL by default.
            access_token: Bearer token sent with every request.
        """
        self._client = client
        self._base_url = (base_url or config.wat_api_url).rstrip("/")
        self._access_token = access_token

    def _batch_url(self, ietf_code: str, resource_type: str) -> str:
        return (
            f"{self._base_url}/api/batch/"
            f"{quote(ietf_code, safe='')}/{quote(resource_type, safe='')}"
        )

    def _request(self, method: str, url: str, json: dict | None = None):
        headers = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        try:
            response = self._client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"request failed: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise ApiError("response is not valid JSON", response.status_code) from e

        try:
            message = response.json().get("error") or response.text
        except ValueError:
            message = response.text
        message = message or response.reason_phrase

        error_class = ERRORS_BY_STATUS.get(response.status_code)
        if error_class is not None:
            raise error_class(message)
        raise ApiError(message, response.status_code)

    def submit_batch(
        self,
        ietf_code: str,
        resource_type: str,
        request: BatchRequest,
    ) -> BatchView:
        data = self._request(
            "POST", self._batch_url(ietf_code, resource_type), json=request.model_dump()
        )
        return BatchView.model_validate(data)

    def get_batch(self, ietf_code: str, resource_type: str) -> BatchView:
        data = self._request("GET", self._batch_url(ietf_code, resource_type))
        return BatchView.model_validate(data)

    def delete_batch(self, ietf_code: str, resource_type: str) -> bool:
        return bool(self._request("DELETE", self._batch_url(ietf_code, resource_type)))

    def list_batches(self) -> list[BatchSummary]:
        data = self._request("GET", f"{self._base_url}/api/batches")
        return [BatchSummary.model_validate(item) for item in data]

    def set_word_correct(self, batch_id: str, word: str, correct: bool | None) -> bool:
        request = WordCorrectRequest(batch_id=batch_id, word=word, correct=correct)
        return bool(self._request("PUT", f"{self._base_url}/api/word", json=request.model_dump()))

    def list_models(self) -> dict[str, list[str]]:
        return self._request("GET", f"{self._base_url}/api/models")
