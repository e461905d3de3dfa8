"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import Attachment, Conversation, Participant, TraceEvent


class IStorage(Protocol):
    """Persistent storage for channels, messages and trace events (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Channels
    async def save_conversation(self, conversation: Conversation) -> None:
        """Create or update a channel and its participants."""
        ...

    async def get_conversation(self, channel_id: str) -> Conversation | None:
        """Get a channel with participants and last message."""
        ...

    async def get_conversations(self, user_id: str) -> list[Conversation]:
        """Channels the user participates in, most recent activity first."""
        ...

    # Messages
    async def insert_message(
        self,
        channel_id: str,
        sender_id: str,
        content: str,
        attachments: list[Attachment] | None = None,
    ) -> dict:
        """Insert a message, assigning id and created_at. Returns the row."""
        ...

    async def get_messages(self, channel_id: str) -> list[dict]:
        """Message rows of a channel, oldest first, with attachments and sender."""
        ...

    async def delete_message(self, message_id: str) -> bool:
        """Delete a message. Returns False if it did not exist."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


def _utc(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Channels
    async def save_conversation(self, conversation: Conversation) -> None:
        """Create or update a channel and its participants."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO channels (id, name, is_group, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET name = excluded.name,
                                          is_group = excluded.is_group
            """,
            (
                conversation.id,
                conversation.name,
                int(conversation.is_group),
                datetime.now(timezone.utc).isoformat(timespec="microseconds"),
            ),
        )
        await conn.execute(
            "DELETE FROM channel_participants WHERE channel_id = ?",
            (conversation.id,),
        )
        for p in conversation.participants:
            await conn.execute(
                """
                INSERT INTO channel_participants
                (channel_id, user_id, display_name, avatar_url, email, online)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    conversation.id,
                    p.user_id,
                    p.display_name,
                    p.avatar_url,
                    p.email,
                    int(p.online),
                ),
            )
        await conn.commit()

    async def get_conversation(self, channel_id: str) -> Conversation | None:
        """Get a channel with participants and last message."""
        conn = self._require_conn()

        cursor = await conn.execute(
            "SELECT id, name, is_group FROM channels WHERE id = ?",
            (channel_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return await self._build_conversation(row)

    async def get_conversations(self, user_id: str) -> list[Conversation]:
        """Channels the user participates in, most recent activity first."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT c.id, c.name, c.is_group
            FROM channels c
            JOIN channel_participants cp ON cp.channel_id = c.id
            WHERE cp.user_id = ?
            ORDER BY COALESCE(
                (SELECT MAX(m.created_at) FROM messages m WHERE m.channel_id = c.id),
                c.created_at
            ) DESC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [await self._build_conversation(row) for row in rows]

    async def _build_conversation(self, row) -> Conversation:
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT user_id, display_name, avatar_url, email, online
            FROM channel_participants
            WHERE channel_id = ?
            ORDER BY display_name
            """,
            (row[0],),
        )
        participants = [
            Participant(
                user_id=p[0],
                display_name=p[1],
                avatar_url=p[2],
                email=p[3],
                online=bool(p[4]),
            )
            for p in await cursor.fetchall()
        ]

        cursor = await conn.execute(
            """
            SELECT content, created_at
            FROM messages
            WHERE channel_id = ?
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (row[0],),
        )
        last = await cursor.fetchone()

        return Conversation(
            id=row[0],
            name=row[1],
            is_group=bool(row[2]),
            participants=participants,
            last_message=last[0] if last else None,
            last_message_at=_utc(last[1]) if last else None,
        )

    # Messages
    async def insert_message(
        self,
        channel_id: str,
        sender_id: str,
        content: str,
        attachments: list[Attachment] | None = None,
    ) -> dict:
        """Insert a message, assigning id and created_at. Returns the row."""
        conn = self._require_conn()

        msg_id = str(uuid.uuid4())
        created_at = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        attachments = attachments or []

        await conn.execute(
            """
            INSERT INTO messages (id, channel_id, sender_id, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (msg_id, channel_id, sender_id, content, created_at),
        )

        for attachment in attachments:
            await conn.execute(
                """
                INSERT INTO message_attachments
                (id, message_id, file_url, file_type, file_name, file_size)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid.uuid4()),
                    msg_id,
                    attachment.url,
                    attachment.type,
                    attachment.name,
                    attachment.size,
                ),
            )

        await conn.commit()

        return {
            "id": msg_id,
            "channel_id": channel_id,
            "sender_id": sender_id,
            "content": content,
            "created_at": created_at,
            "attachments": [a.to_dict() for a in attachments],
        }

    async def get_messages(self, channel_id: str) -> list[dict]:
        """Message rows of a channel, oldest first, with attachments and sender."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            SELECT m.id, m.channel_id, m.sender_id, m.content, m.created_at,
                   cp.display_name, cp.avatar_url, cp.email
            FROM messages m
            LEFT JOIN channel_participants cp
                ON cp.channel_id = m.channel_id AND cp.user_id = m.sender_id
            WHERE m.channel_id = ?
            ORDER BY m.created_at ASC
            """,
            (channel_id,),
        )
        rows = await cursor.fetchall()

        records = []
        for row in rows:
            att_cursor = await conn.execute(
                """
                SELECT file_url, file_type, file_name, file_size
                FROM message_attachments
                WHERE message_id = ?
                """,
                (row[0],),
            )
            att_rows = await att_cursor.fetchall()

            record = {
                "id": row[0],
                "channel_id": row[1],
                "sender_id": row[2],
                "content": row[3],
                "created_at": row[4],
                "attachments": [
                    {"url": a[0], "type": a[1], "name": a[2], "size": a[3]}
                    for a in att_rows
                ],
            }
            if row[5] is not None:
                record["sender"] = {
                    "id": row[2],
                    "name": row[5],
                    "avatar": row[6],
                    "email": row[7],
                }
            records.append(record)

        return records

    async def delete_message(self, message_id: str) -> bool:
        """Delete a message. Returns False if it did not exist."""
        conn = self._require_conn()

        await conn.execute(
            "DELETE FROM message_attachments WHERE message_id = ?", (message_id,)
        )
        cursor = await conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
        await conn.commit()
        return cursor.rowcount > 0

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, default=str),
                event.timestamp.isoformat(timespec="microseconds"),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(after.isoformat(timespec="microseconds"))
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

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=_utc(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        tables = [
            "message_attachments",
            "messages",
            "channel_participants",
            "channels",
            "trace_events",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
