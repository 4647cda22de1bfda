"""DuckDB connection holder and schema bootstrap.

All three collections owned by the real-time core live in one embedded
DuckDB database:

    conversations:
        - id: UUID primary key
        - kind: 'public' or 'private'
        - participant_ids: VARCHAR[] (empty for the public conversation)
        - last_message_at: recency marker used for list ordering
        - created_at: creation time (UTC)
    messages:
        - seq: store-assigned insertion order (tie-break for created_at)
        - id, conversation_id, sender_id, sender_name, content, created_at
    notifications:
        - seq: store-assigned insertion order
        - id, user_id, message, is_read, link, kind, created_at

Thread Safety:
    The DuckDB connection is NOT thread-safe. The whole service runs on a
    single event loop, so every store shares one connection.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import duckdb

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS messages_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS notifications_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id              VARCHAR PRIMARY KEY,
        kind            VARCHAR NOT NULL,
        participant_ids VARCHAR[] NOT NULL,
        last_message_at TIMESTAMP,
        created_at      TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        seq             BIGINT DEFAULT nextval('messages_seq'),
        id              VARCHAR PRIMARY KEY,
        conversation_id VARCHAR NOT NULL,
        sender_id       VARCHAR NOT NULL,
        sender_name     VARCHAR NOT NULL,
        content         VARCHAR NOT NULL,
        created_at      TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        seq        BIGINT DEFAULT nextval('notifications_seq'),
        id         VARCHAR PRIMARY KEY,
        user_id    VARCHAR NOT NULL,
        message    VARCHAR NOT NULL,
        is_read    BOOLEAN NOT NULL DEFAULT false,
        link       VARCHAR,
        kind       VARCHAR NOT NULL DEFAULT 'system',
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id)",
)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching DuckDB's TIMESTAMP type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Database:
    """Owns the DuckDB connection shared by the conversation, message and
    notification stores.

    Args:
        db_path: Path to the DuckDB file, or ":memory:" for tests.
    """

    def __init__(self, db_path: str = "workflow.duckdb") -> None:
        self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()

    def connection(self) -> duckdb.DuckDBPyConnection:
        """Get the DuckDB connection, creating if needed."""
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create tables, sequences and indexes. Idempotent."""
        conn = self.connection()
        for statement in _SCHEMA:
            conn.execute(statement)
        logger.info("[Database] Initialized with db=%s", self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
