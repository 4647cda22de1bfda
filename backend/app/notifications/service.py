"""NotificationStore — DuckDB-backed per-user notification history.

Every query is filtered by the owning user id. A notification that belongs
to somebody else is treated exactly like one that does not exist.
"""
import logging
import uuid
from typing import List

import duckdb

from app.db import Database, utcnow
from app.errors import NotFound, PersistenceFailure

from .schemas import Notification, NotificationCreate, NotificationKind

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50

_COLUMNS = "id, user_id, message, is_read, link, kind, created_at"


class NotificationStore:
    """Durable, per-user, ordered record of push notifications."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, entry: NotificationCreate) -> Notification:
        """Persist a new unread notification.

        Raises:
            PersistenceFailure: If the insert fails.
        """
        notification = Notification(
            id=str(uuid.uuid4()),
            userId=entry.userId,
            message=entry.message,
            read=False,
            link=entry.link,
            kind=entry.kind,
            createdAt=utcnow(),
        )
        try:
            self._db.connection().execute(
                f"INSERT INTO notifications ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    notification.id,
                    notification.userId,
                    notification.message,
                    notification.read,
                    notification.link,
                    notification.kind.value,
                    notification.createdAt,
                ],
            )
        except duckdb.Error as exc:
            logger.error("[Notifications] Failed to persist for user %s: %s", entry.userId, exc)
            raise PersistenceFailure(str(exc)) from exc
        return notification

    def list_for_user(self, user_id: str, limit: int = DEFAULT_LIST_LIMIT) -> List[Notification]:
        """Newest first, at most ``limit`` entries."""
        rows = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM notifications
            WHERE user_id = ?
            ORDER BY created_at DESC, seq DESC
            LIMIT ?
            """,
            [user_id, max(1, limit)],
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def unread_count(self, user_id: str) -> int:
        row = self._db.connection().execute(
            "SELECT count(*) FROM notifications WHERE user_id = ? AND NOT is_read",
            [user_id],
        ).fetchone()
        return row[0]

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of ``user_id`` as read.

        Returns:
            Number of notifications changed (zero is still a success).
        """
        try:
            rows = self._db.connection().execute(
                """
                UPDATE notifications SET is_read = true
                WHERE user_id = ? AND NOT is_read
                RETURNING id
                """,
                [user_id],
            ).fetchall()
        except duckdb.Error as exc:
            raise PersistenceFailure(str(exc)) from exc
        return len(rows)

    def delete_one(self, user_id: str, notification_id: str) -> None:
        """Delete a notification owned by ``user_id``.

        Raises:
            NotFound: If it does not exist or belongs to another user.
        """
        try:
            row = self._db.connection().execute(
                "DELETE FROM notifications WHERE id = ? AND user_id = ? RETURNING id",
                [notification_id, user_id],
            ).fetchone()
        except duckdb.Error as exc:
            raise PersistenceFailure(str(exc)) from exc
        if row is None:
            raise NotFound("Notification not found")

    @staticmethod
    def _row_to_model(row) -> Notification:
        return Notification(
            id=row[0],
            userId=row[1],
            message=row[2],
            read=row[3],
            link=row[4],
            kind=NotificationKind(row[5]),
            createdAt=row[6],
        )
