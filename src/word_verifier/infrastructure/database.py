"""Database engine, schema and dialect helpers."""

import logging

from sqlalchemy import (
    Boolean,
    Column,
    Connection,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()


batches = Table(
    "batches",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("ietf_code", String(255), nullable=False),
    Column("resource_type", String(255), nullable=False),
    Column("language", String(255), nullable=False, server_default=""),
    Column("pending", Boolean, nullable=False, default=False),
    Column("total_pending", Integer, nullable=False, default=0),
    Column("error", Text, nullable=True),
    Column("run_id", String(64), nullable=True),
    Column("created_by", String(255), nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    Index("idx_unique_batch", "ietf_code", "resource_type", unique=True),
)


words = Table(
    "words",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("word", String(255), nullable=False),
    Column(
        "batch_id",
        String(255),
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("correct", Boolean, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Index("idx_unique_word", "word", "batch_id", unique=True),
    Index("idx_word_batch_id", "batch_id"),
    Index("idx_word_correct", "correct"),
)


model_results = Table(
    "model_results",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("model", String(255), nullable=False),
    Column("status", Integer, nullable=False),
    Column(
        "word_id",
        Integer,
        ForeignKey("words.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("run_id", String(64), nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Index("idx_unique_model", "model", "word_id", unique=True),
    Index("idx_model_word_id", "word_id"),
)


batch_errors = Table(
    "batch_errors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "batch_id",
        String(255),
        ForeignKey("batches.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("model", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Index("idx_batch_error_batch_id", "batch_id"),
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, **kwargs) -> Engine:
    """
    Create an engine for the given URL.

    Args:
        url: SQLAlchemy database URL.
        **kwargs: Extra create_engine arguments.

    Returns:
        Configured Engine.
    """
    engine = create_engine(url, pool_pre_ping=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Database schema ready")


def dialect_insert(conn: Connection, table: Table):
    """
    Build an INSERT that supports ON CONFLICT for the connection's dialect.

    Args:
        conn: Active connection.
        table: Target table.

    Returns:
        A dialect-specific Insert construct.
    """
    if conn.dialect.name == "postgresql":
        return postgresql.insert(table)
    if conn.dialect.name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts are not supported on {conn.dialect.name}")
