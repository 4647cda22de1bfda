"""ConversationStore — DuckDB-backed conversation records.

There is exactly one public conversation. It is created at startup (see
``app/main.py``) and, as a fallback, lazily on first use; its id is cached
after the first lookup.

Private conversations are looked up by participant pair before creation.
There is no uniqueness constraint on the pair, so two simultaneous creations
for the same pair could both insert. Within one event loop this cannot
happen because the check and the insert run without an await in between.
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

import duckdb

from app.db import Database, utcnow
from app.errors import InvalidRequest, PersistenceFailure

from .schemas import Conversation, ConversationKind

logger = logging.getLogger(__name__)

_COLUMNS = "id, kind, participant_ids, last_message_at, created_at"


class ConversationStore:
    """Durable record of public and private conversations."""

    def __init__(self, db: Database, public_room: str = "general") -> None:
        self._db = db
        self._public_room = public_room
        self._public_id: Optional[str] = None

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def get(self, conversation_id: str) -> Optional[Conversation]:
        row = self._db.connection().execute(
            f"SELECT {_COLUMNS} FROM conversations WHERE id = ?",
            [conversation_id],
        ).fetchone()
        return self._row_to_model(row) if row else None

    def get_for_user(self, conversation_id: str, user_id: str) -> Optional[Conversation]:
        """Return the conversation if ``user_id`` may see it.

        Public conversations are visible to everyone; private ones only to
        their participants. Anything else is reported as missing.
        """
        conv = self.get(conversation_id)
        if conv is None:
            return None
        if conv.kind == ConversationKind.PUBLIC or conv.has_participant(user_id):
            return conv
        return None

    def list_for_user(self, user_id: str) -> List[Conversation]:
        """Every private conversation of the user plus the public one,
        most recently active first."""
        rows = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM conversations
            WHERE kind = 'public' OR list_contains(participant_ids, ?)
            ORDER BY last_message_at DESC NULLS LAST, created_at DESC
            """,
            [user_id],
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    # -----------------------------------------------------------------------
    # Get-or-create
    # -----------------------------------------------------------------------

    def get_or_create_public(self) -> Conversation:
        """Return the singleton public conversation, creating it if needed."""
        if self._public_id is not None:
            conv = self.get(self._public_id)
            if conv is not None:
                return conv

        row = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM conversations
            WHERE kind = 'public'
            ORDER BY created_at ASC
            LIMIT 1
            """
        ).fetchone()
        if row:
            conv = self._row_to_model(row)
        else:
            conv = self._insert(ConversationKind.PUBLIC, [], last_message_at=None)
            logger.info("[Conversations] Created public conversation %s", conv.id)
        self._public_id = conv.id
        return conv

    def get_or_create_private(self, user_a: str, user_b: str) -> Tuple[Conversation, bool]:
        """Return the private conversation between two users.

        Args:
            user_a: One participant (usually the requester).
            user_b: The other participant.

        Returns:
            Tuple of (conversation, created). ``created`` is False when an
            existing conversation for the pair was found, in either order.

        Raises:
            InvalidRequest: If both ids are the same user, either is empty,
                or either names a room (the public room or a conversation id).
        """
        if not user_a or not user_b:
            raise InvalidRequest("Both participants are required")
        if user_a == user_b:
            raise InvalidRequest("Cannot start a chat with yourself")
        for user_id in (user_a, user_b):
            # User ids double as personal room names.
            if user_id == self._public_room or self.get(user_id) is not None:
                raise InvalidRequest(f"Invalid participant: {user_id}")

        row = self._db.connection().execute(
            f"""
            SELECT {_COLUMNS} FROM conversations
            WHERE kind = 'private'
              AND len(participant_ids) = 2
              AND list_contains(participant_ids, ?)
              AND list_contains(participant_ids, ?)
            ORDER BY created_at ASC
            LIMIT 1
            """,
            [user_a, user_b],
        ).fetchone()
        if row:
            return self._row_to_model(row), False

        conv = self._insert(ConversationKind.PRIVATE, [user_a, user_b], last_message_at=utcnow())
        logger.info(
            "[Conversations] Created private conversation %s for %s/%s",
            conv.id, user_a, user_b,
        )
        return conv, True

    # -----------------------------------------------------------------------
    # Recency
    # -----------------------------------------------------------------------

    def touch_last_message_at(self, conversation_id: str, timestamp: datetime) -> None:
        """Advance ``last_message_at``; never moves it backwards."""
        try:
            self._db.connection().execute(
                """
                UPDATE conversations SET last_message_at = ?
                WHERE id = ? AND (last_message_at IS NULL OR last_message_at < ?)
                """,
                [timestamp, conversation_id, timestamp],
            )
        except duckdb.Error as exc:
            raise PersistenceFailure(str(exc)) from exc

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    def _insert(
        self,
        kind: ConversationKind,
        participant_ids: List[str],
        last_message_at: Optional[datetime],
    ) -> Conversation:
        conv_id = str(uuid.uuid4())
        now = utcnow()
        try:
            self._db.connection().execute(
                f"INSERT INTO conversations ({_COLUMNS}) VALUES (?, ?, ?::VARCHAR[], ?, ?)",
                [conv_id, kind.value, participant_ids, last_message_at, now],
            )
        except duckdb.Error as exc:
            raise PersistenceFailure(str(exc)) from exc
        return Conversation(
            id=conv_id,
            kind=kind,
            participantIds=list(participant_ids),
            lastMessageAt=last_message_at,
            createdAt=now,
        )

    @staticmethod
    def _row_to_model(row) -> Conversation:
        return Conversation(
            id=row[0],
            kind=ConversationKind(row[1]),
            participantIds=list(row[2] or []),
            lastMessageAt=row[3],
            createdAt=row[4],
        )
