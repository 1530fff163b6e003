"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import ChatMessage, TraceEvent, UserProfile, as_utc

SortOrder = Literal["asc", "desc"]

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def _ts(value: datetime) -> str:
    """Fixed-width UTC text so that string order matches time order."""
    return as_utc(value).strftime(_TS_FORMAT)


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value).astimezone(timezone.utc)


class IStorage(Protocol):
    """Persistent storage: message log, identity tables, trace events."""

    async def init(self) -> None:
        """Open the connection and create tables."""
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...

    # Messages
    async def insert_message(self, message: ChatMessage) -> None:
        """Append a message to the log."""
        ...

    async def get_messages(
        self,
        limit: int | None = None,
        order: SortOrder = "asc",
        after: datetime | None = None,
    ) -> list[ChatMessage]:
        """Read messages ordered by creation time (ties by insertion order)."""
        ...

    async def delete_messages(self, ids: list[str]) -> int:
        """Delete messages by id. Returns number of deleted rows."""
        ...

    async def delete_messages_before(self, cutoff: datetime) -> int:
        """Delete messages created before cutoff. Returns number of deleted rows."""
        ...

    async def count_messages(self) -> int:
        ...

    # Approved emails
    async def add_approved_email(self, email: str) -> None:
        ...

    async def remove_approved_email(self, email: str) -> bool:
        ...

    async def is_email_approved(self, email: str) -> bool:
        ...

    # Users
    async def save_user(self, profile: UserProfile, password_hash: str) -> None:
        ...

    async def update_user(self, profile: UserProfile) -> None:
        ...

    async def get_user(self, user_id: str) -> UserProfile | None:
        ...

    async def get_credentials(self, email: str) -> tuple[UserProfile, str] | None:
        """Profile and password hash for an email."""
        ...

    # Sessions
    async def revoke_token(self, jti: str, expires_at: datetime) -> None:
        ...

    async def is_token_revoked(self, jti: str) -> bool:
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        """Open the connection and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # Messages
    async def insert_message(self, message: ChatMessage) -> None:
        """Append a message to the log. Duplicate ids raise IntegrityError."""
        await self.conn.execute(
            """
            INSERT INTO messages (id, user_id, user_name, user_avatar, content, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.id,
                message.user_id,
                message.user_name,
                message.user_avatar,
                message.content,
                _ts(message.created_at),
            ),
        )
        await self.conn.commit()

    async def get_messages(
        self,
        limit: int | None = None,
        order: SortOrder = "asc",
        after: datetime | None = None,
    ) -> list[ChatMessage]:
        """Read messages ordered by creation time (ties by insertion order)."""
        direction = "DESC" if order == "desc" else "ASC"
        conditions = []
        params: list = []

        if after:
            conditions.append("created_at >= ?")
            params.append(_ts(after))

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        query = f"""
            SELECT id, user_id, user_name, user_avatar, content, created_at
            FROM messages
            {where_clause}
            ORDER BY created_at {direction}, seq {direction}
        """
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        cursor = await self.conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            ChatMessage(
                id=row[0],
                user_id=row[1],
                user_name=row[2],
                user_avatar=row[3],
                content=row[4],
                created_at=_parse_ts(row[5]),
            )
            for row in rows
        ]

    async def delete_messages(self, ids: list[str]) -> int:
        """Delete messages by id. Returns number of deleted rows."""
        if not ids:
            return 0

        placeholders = ",".join("?" * len(ids))
        cursor = await self.conn.execute(
            f"DELETE FROM messages WHERE id IN ({placeholders})", ids
        )
        await self.conn.commit()
        return cursor.rowcount

    async def delete_messages_before(self, cutoff: datetime) -> int:
        """Delete messages created before cutoff. Returns number of deleted rows."""
        cursor = await self.conn.execute(
            "DELETE FROM messages WHERE created_at < ?", (_ts(cutoff),)
        )
        await self.conn.commit()
        return cursor.rowcount

    async def count_messages(self) -> int:
        cursor = await self.conn.execute("SELECT COUNT(*) FROM messages")
        row = await cursor.fetchone()
        return row[0]

    # Approved emails
    async def add_approved_email(self, email: str) -> None:
        await self.conn.execute(
            """
            INSERT OR IGNORE INTO approved_emails (email, created_at)
            VALUES (?, ?)
            """,
            (email.lower(), _ts(datetime.now(timezone.utc))),
        )
        await self.conn.commit()

    async def remove_approved_email(self, email: str) -> bool:
        cursor = await self.conn.execute(
            "DELETE FROM approved_emails WHERE email = ?", (email.lower(),)
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def is_email_approved(self, email: str) -> bool:
        cursor = await self.conn.execute(
            "SELECT 1 FROM approved_emails WHERE email = ?", (email.lower(),)
        )
        return await cursor.fetchone() is not None

    # Users
    async def save_user(self, profile: UserProfile, password_hash: str) -> None:
        """Insert a new account. Duplicate email raises IntegrityError."""
        await self.conn.execute(
            """
            INSERT INTO users (id, email, name, profile_picture_url, password_hash, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                profile.id,
                profile.email.lower(),
                profile.name,
                profile.profile_picture_url,
                password_hash,
                _ts(profile.created_at),
            ),
        )
        await self.conn.commit()

    async def update_user(self, profile: UserProfile) -> None:
        await self.conn.execute(
            """
            UPDATE users SET name = ?, profile_picture_url = ?
            WHERE id = ?
            """,
            (profile.name, profile.profile_picture_url, profile.id),
        )
        await self.conn.commit()

    async def get_user(self, user_id: str) -> UserProfile | None:
        cursor = await self.conn.execute(
            """
            SELECT id, email, name, profile_picture_url, created_at
            FROM users
            WHERE id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return self._row_to_profile(row)

    async def get_credentials(self, email: str) -> tuple[UserProfile, str] | None:
        cursor = await self.conn.execute(
            """
            SELECT id, email, name, profile_picture_url, created_at, password_hash
            FROM users
            WHERE email = ?
            """,
            (email.lower(),),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return self._row_to_profile(row), row[5]

    @staticmethod
    def _row_to_profile(row) -> UserProfile:
        return UserProfile(
            id=row[0],
            email=row[1],
            name=row[2],
            profile_picture_url=row[3],
            created_at=_parse_ts(row[4]),
        )

    # Sessions
    async def revoke_token(self, jti: str, expires_at: datetime) -> None:
        await self.conn.execute(
            "INSERT OR IGNORE INTO revoked_tokens (jti, expires_at) VALUES (?, ?)",
            (jti, _ts(expires_at)),
        )
        # Revocations are only needed until the token would expire anyway
        await self.conn.execute(
            "DELETE FROM revoked_tokens WHERE expires_at < ?",
            (_ts(datetime.now(timezone.utc)),),
        )
        await self.conn.commit()

    async def is_token_revoked(self, jti: str) -> bool:
        cursor = await self.conn.execute(
            "SELECT 1 FROM revoked_tokens WHERE jti = ?", (jti,)
        )
        return await cursor.fetchone() is not None

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        await self.conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data),
                _ts(event.timestamp),
            ),
        )
        await self.conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_ts(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await self.conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data except the approval list."""
        tables = [
            "messages",
            "users",
            "revoked_tokens",
            "trace_events",
        ]

        for table in tables:
            await self.conn.execute(f"DELETE FROM {table}")

        await self.conn.commit()
