"""Shared fixtures."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.pool import StaticPool

from word_verifier.infrastructure.database import create_db_engine, create_schema
from word_verifier.services.batch_store import BatchStore
from word_verifier.services.sqs_publisher import SQSPublisher


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of a test."""
    engine = create_db_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """Store with a tiny chunk size so chunking is exercised."""
    return BatchStore(engine, sql_batch_limit=3)


@pytest.fixture
def publisher():
    return MagicMock(spec=SQSPublisher)
