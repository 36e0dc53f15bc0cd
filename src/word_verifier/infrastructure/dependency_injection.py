"""Wiring of the word verifier: boto3, database, AI providers and services."""

import logging
import os

import anthropic
import boto3
import httpx
from dependency_injector import providers
from dependency_injector.containers import DeclarativeContainer
from google import genai
from google.genai import types

from word_verifier.config import Config
from word_verifier.infrastructure.anthropic_client import AnthropicClient
from word_verifier.infrastructure.database import create_db_engine
from word_verifier.infrastructure.gemini_client import GeminiClient
from word_verifier.infrastructure.openai_compatible_client import OpenAICompatibleClient
from word_verifier.infrastructure.sqs_client import SQSClient
from word_verifier.models.chat_transport import ChatTransport
from word_verifier.models.providers import PROVIDERS, ModelRegistry, ProviderKind, ProviderSpec

logger = logging.getLogger(__name__)


def _create_session() -> boto3.Session:
    """Create the boto3 session shared by every AWS client.

    Lambda runs under its execution role; elsewhere AWS_PROFILE selects
    the credentials when set.
    """
    region = os.getenv("AWS_REGION", "us-east-1")

    # Execution role credentials
    if os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
        return boto3.Session(region_name=region)

    profile = os.getenv("AWS_PROFILE")
    if profile:
        return boto3.Session(profile_name=profile, region_name=region)
    return boto3.Session(region_name=region)


def provider_base_url(spec: ProviderSpec, gateway_url: str) -> str:
    """Base URL of a provider, routed through the AI gateway when one is configured."""
    if gateway_url and spec.gateway_slug:
        return f"{gateway_url.rstrip('/')}/{spec.gateway_slug}"
    return spec.base_url


def build_transports(config: Config, http_client: httpx.Client) -> dict[ProviderKind, ChatTransport]:
    """
    Create one transport per provider that has credentials.

    Providers without an API key are left out; models served by them fail
    with a ProviderError when asked.

    Args:
        config: Service configuration.
        http_client: Shared httpx client for the OpenAI-compatible providers.

    Returns:
        Mapping of provider kind to transport.
    """
    transports: dict[ProviderKind, ChatTransport] = {}

    for kind, spec in PROVIDERS.items():
        api_key = config.api_key(spec.api_key_setting)
        if not api_key:
            logger.info("No %s configured, %s models disabled", spec.api_key_setting, kind.value)
            continue

        base_url = provider_base_url(spec, config.ai_gateway_url)

        if kind == ProviderKind.ANTHROPIC:
            client = anthropic.Anthropic(
                api_key=api_key,
                base_url=base_url,
                timeout=config.ai_request_timeout,
                max_retries=0,
            )
            transports[kind] = AnthropicClient(
                client, max_tokens=config.ai_max_tokens, temperature=config.ai_temperature
            )
        elif kind == ProviderKind.GEMINI:
            client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=int(config.ai_request_timeout * 1000)),
            )
            transports[kind] = GeminiClient(
                client, max_tokens=config.ai_max_tokens, temperature=config.ai_temperature
            )
        else:
            transports[kind] = OpenAICompatibleClient(
                http_client,
                base_url=base_url,
                api_key=api_key,
                max_tokens=config.ai_max_tokens,
                temperature=config.ai_temperature,
            )

    return transports


def _create_gateway(registry: ModelRegistry, http_client: httpx.Client):
    """Factory for AIGatewayClient to avoid circular import."""
    from word_verifier.services.ai_gateway import AIGatewayClient

    return AIGatewayClient(registry, build_transports(Config(), http_client))


def _create_store(engine):
    """Factory for BatchStore to avoid circular import."""
    from word_verifier.services.batch_store import BatchStore

    return BatchStore(engine, sql_batch_limit=Config().sql_batch_limit)


def _create_sqs_publisher(sqs_client: SQSClient):
    """Factory for SQSPublisher to avoid circular import."""
    from word_verifier.services.sqs_publisher import SQSPublisher

    return SQSPublisher(sqs_client, Config().sqs_queue_url)


def _create_sqs_receiver(sqs_client: SQSClient):
    """Factory for SQSReceiver to avoid circular import."""
    from word_verifier.services.sqs_receiver import SQSReceiver

    return SQSReceiver(sqs_client, Config().sqs_queue_url)


def _create_orchestrator(store, sqs_publisher, registry: ModelRegistry):
    """Factory for BatchOrchestrator to avoid circular import."""
    from word_verifier.services.orchestrator import BatchOrchestrator

    return BatchOrchestrator(
        store,
        sqs_publisher,
        registry,
        pending_timeout_minutes=Config().pending_timeout_minutes,
    )


def _create_aggregator(store):
    """Factory for ProgressAggregator to avoid circular import."""
    from word_verifier.services.progress import ProgressAggregator

    return ProgressAggregator(store)


class DependenciesContainer(DeclarativeContainer):
    """Singletons shared by the API Lambda, the worker Lambda and the worker loop."""

    # Session (Lambda execution role or local AWS profile)
    session = providers.Singleton(_create_session)

    # SQS dependency chain
    sqs_boto_client = providers.Singleton(
        lambda session: session.client("sqs"),
        session=session,
    )

    sqs_client = providers.Singleton(
        SQSClient,
        client=sqs_boto_client,
    )

    sqs_publisher = providers.Singleton(
        _create_sqs_publisher,
        sqs_client=sqs_client,
    )

    sqs_receiver = providers.Singleton(
        _create_sqs_receiver,
        sqs_client=sqs_client,
    )

    # Database dependency chain
    engine = providers.Singleton(
        lambda: create_db_engine(Config().database_url),
    )

    store = providers.Singleton(
        _create_store,
        engine=engine,
    )

    # AI providers
    registry = providers.Singleton(ModelRegistry)

    http_client = providers.Singleton(
        lambda: httpx.Client(timeout=Config().ai_request_timeout),
    )

    gateway = providers.Singleton(
        _create_gateway,
        registry=registry,
        http_client=http_client,
    )

    # Services
    orchestrator = providers.Singleton(
        _create_orchestrator,
        store=store,
        sqs_publisher=sqs_publisher,
        registry=registry,
    )

    aggregator = providers.Singleton(
        _create_aggregator,
        store=store,
    )
