"""AWS Lambda handler for the batch API.

Triggered by API Gateway (REST or HTTP API proxy integration).
Submits batches, reports their progress and serves the thin CRUD around them.
"""

import logging

from word_verifier.config import config
from word_verifier.handlers.api import ApiRouter, json_response, parse_event
from word_verifier.infrastructure.dependency_injection import DependenciesContainer

# Configure root logger for Lambda (all modules will inherit this)
logging.getLogger().setLevel(logging.INFO)
logger = logging.getLogger(__name__)

_container = None


def get_container() -> DependenciesContainer:
    """Build the DI container once per Lambda execution environment."""
    global _container
    if _container is None:
        config.validate()
        _container = DependenciesContainer()
    return _container


def lambda_handler(event: dict, context) -> dict:
    """
    Lambda handler function triggered by API Gateway.

    Args:
        event: API Gateway proxy event.
        context: Lambda context object.

    Returns:
        Response dict with statusCode, headers and body.
    """
    try:
        request = parse_event(event)

        container = get_container()
        router = ApiRouter(
            orchestrator=container.orchestrator(),
            aggregator=container.aggregator(),
            registry=container.registry(),
        )

        return router.handle(request)

    except Exception as e:
        logger.exception("Failed to handle API request: %s", e)
        return json_response(500, {"error": str(e)})
