"""MessageLog — append-only per-conversation message storage in DuckDB.

Ordering:
    Messages are ordered by ``created_at`` with the store-assigned ``seq``
    as tie-break. ``append`` hands out strictly increasing timestamps within
    the process, so two messages never share a creation time unless they were
    written by different processes.
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

import duckdb

from app.db import Database, utcnow
from app.errors import PersistenceFailure

from .schemas import Message

logger = logging.getLogger(__name__)

# Ceiling for recent_history; clients cannot ask for more.
MAX_HISTORY = 50

_COLUMNS = "id, conversation_id, sender_id, sender_name, content, created_at"


class MessageLog:
    """Append-only ordered sequence of messages per conversation."""

    def __init__(self, db: Database) -> None:
        self._db = db
        row = self._db.connection().execute(
            "SELECT max(created_at) FROM messages"
        ).fetchone()
        self._last_ts: Optional[datetime] = row[0] if row else None

    def _next_timestamp(self) -> datetime:
        now = utcnow()
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + timedelta(microseconds=1)
        self._last_ts = now
        return now

    def append(
        self,
        conversation_id: str,
        sender_id: str,
        sender_name: str,
        content: str,
    ) -> Optional[Message]:
        """Persist a message.

        Args:
            conversation_id: Target conversation.
            sender_id: Sender's user ID.
            sender_name: Sender's display name (snapshot).
            content: Message text; surrounding whitespace is stripped.

        Returns:
            The stored Message, or None when the content is empty or
            whitespace-only (nothing is written).

        Raises:
            PersistenceFailure: If the insert fails.
        """
        content = (content or "").strip()
        if not content:
            return None

        message = Message(
            id=str(uuid.uuid4()),
            conversationId=conversation_id,
            senderId=sender_id,
            senderName=sender_name or "",
            content=content,
            createdAt=self._next_timestamp(),
        )
        try:
            self._db.connection().execute(
                f"INSERT INTO messages ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    message.id,
                    message.conversationId,
                    message.senderId,
                    message.senderName,
                    message.content,
                    message.createdAt,
                ],
            )
        except duckdb.Error as exc:
            logger.error("[Messages] Failed to persist message in %s: %s", conversation_id, exc)
            raise PersistenceFailure(str(exc)) from exc
        return message

    def recent_history(self, conversation_id: str, limit: int = MAX_HISTORY) -> List[Message]:
        """Return the newest ``limit`` messages, oldest first.

        ``limit`` is clamped to ``MAX_HISTORY``.
        """
        limit = max(1, min(limit, MAX_HISTORY))
        rows = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM messages
            WHERE conversation_id = ?
            ORDER BY created_at DESC, seq DESC
            LIMIT ?
            """,
            [conversation_id, limit],
        ).fetchall()
        return [self._row_to_model(r) for r in reversed(rows)]

    def history(self, conversation_id: str) -> List[Message]:
        """Return every message of a conversation, oldest first."""
        rows = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM messages
            WHERE conversation_id = ?
            ORDER BY created_at ASC, seq ASC
            """,
            [conversation_id],
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def count(self, conversation_id: str) -> int:
        row = self._db.connection().execute(
            "SELECT count(*) FROM messages WHERE conversation_id = ?",
            [conversation_id],
        ).fetchone()
        return row[0]

    @staticmethod
    def _row_to_model(row) -> Message:
        return Message(
            id=row[0],
            conversationId=row[1],
            senderId=row[2],
            senderName=row[3],
            content=row[4],
            createdAt=row[5],
        )
