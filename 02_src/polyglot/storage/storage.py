"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    Chat,
    Message,
    PresenceStatus,
    Profile,
    Sticker,
    Task,
    TaskStatus,
    TaskType,
    TraceEvent,
    Translation,
)

_MESSAGE_COLUMNS = (
    "id, chat_id, sender_id, kind, content, reply_to, image_ref, sticker_ref, "
    "from_assistant, edited, edited_at, created_at"
)
_TASK_COLUMNS = (
    "id, task_type, payload, run_at, status, attempts, last_error, created_at"
)
_STICKER_COLUMNS = "id, name, category, tags, image_ref, uploaded_by, created_at"


def _to_db(ts: datetime | None) -> str | None:
    """Serialize a timestamp so that text order equals time order."""
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _row_to_message(row) -> Message:
    return Message(
        id=row[0],
        chat_id=row[1],
        sender_id=row[2],
        kind=row[3],
        content=row[4],
        reply_to=row[5],
        image_ref=row[6],
        sticker_ref=row[7],
        from_assistant=bool(row[8]),
        edited=bool(row[9]),
        edited_at=_from_db(row[10]),
        created_at=_from_db(row[11]),
    )


def _message_values(message: Message) -> tuple:
    return (
        message.id,
        message.chat_id,
        message.sender_id,
        message.kind,
        message.content,
        message.reply_to,
        message.image_ref,
        message.sticker_ref,
        int(message.from_assistant),
        int(message.edited),
        _to_db(message.edited_at),
        _to_db(message.created_at),
    )


def _row_to_sticker(row) -> Sticker:
    return Sticker(
        id=row[0],
        name=row[1],
        category=row[2],
        tags=json.loads(row[3]),
        image_ref=row[4],
        uploaded_by=row[5],
        created_at=_from_db(row[6]),
    )


def _row_to_task(row) -> Task:
    return Task(
        id=row[0],
        task_type=TaskType(row[1]),
        payload=json.loads(row[2]),
        run_at=_from_db(row[3]),
        status=row[4],
        attempts=row[5],
        last_error=row[6],
        created_at=_from_db(row[7]),
    )


class IStorage(Protocol):
    """Persistent storage for chats, messages, translations and tasks (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Profiles
    async def save_profile(self, profile: Profile) -> None:
        """Create or replace a profile."""
        ...

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile by user ID."""
        ...

    async def get_preferred_language(self, user_id: str) -> str | None:
        """Get the user's current preferred language."""
        ...

    async def set_status(self, user_id: str, status: PresenceStatus) -> bool:
        """Update presence status. Returns False if the profile is missing."""
        ...

    async def search_profiles(self, query: str, limit: int = 20) -> list[Profile]:
        """Find human profiles whose name contains the query."""
        ...

    async def ensure_system_identity(self, name: str, language: str) -> str:
        """Return the user ID for a named system identity, creating it if absent."""
        ...

    # Chats
    async def save_chat(self, chat: Chat) -> None:
        """Save a chat and its participants."""
        ...

    async def get_chat(self, chat_id: str) -> Chat | None:
        """Get a chat by ID."""
        ...

    async def find_direct_chat(self, user_a: str, user_b: str) -> Chat | None:
        """Find the direct chat between two users."""
        ...

    async def list_chats_for_user(self, user_id: str) -> list[Chat]:
        """Chats the user participates in, most recently active first."""
        ...

    async def touch_chat_activity(self, chat_id: str, timestamp: datetime) -> None:
        """Move last_activity_at forward (never backward)."""
        ...

    async def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat with its messages, translations and reply markers."""
        ...

    # Messages
    async def insert_message(self, message: Message) -> str:
        """Insert a message. Returns its ID."""
        ...

    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        ...

    async def get_messages(self, chat_id: str, limit: int = 50) -> list[Message]:
        """Most recent messages of a chat, oldest first."""
        ...

    async def list_recent_text_messages(
        self, chat_id: str, limit: int
    ) -> list[Message]:
        """Most recent text messages of a chat, oldest first."""
        ...

    async def get_last_message(self, chat_id: str) -> Message | None:
        """Newest message of a chat of any kind."""
        ...

    # Translations
    async def try_insert_translation(self, translation: Translation) -> bool:
        """Insert unless (message_id, target_language) exists. Returns True if inserted."""
        ...

    async def get_translation(
        self, message_id: str, target_language: str
    ) -> Translation | None:
        """Get the translation of a message into a language."""
        ...

    async def get_translations(self, message_id: str) -> list[Translation]:
        """All translations of a message."""
        ...

    # Assistant replies
    async def insert_assistant_reply(
        self, trigger_message_id: str, reply: Message
    ) -> bool:
        """Store the reply unless one exists for the trigger. Returns True if stored."""
        ...

    async def has_assistant_reply(self, trigger_message_id: str) -> bool:
        """Check whether the trigger has already been answered."""
        ...

    # Stickers
    async def save_sticker(self, sticker: Sticker) -> None:
        """Register a sticker in the catalog."""
        ...

    async def get_sticker(self, sticker_id: str) -> Sticker | None:
        """Get a sticker by ID."""
        ...

    async def list_stickers(self, category: str | None = None) -> list[Sticker]:
        """Catalog stickers, optionally of one category."""
        ...

    async def list_sticker_categories(self) -> list[str]:
        """Distinct sticker categories."""
        ...

    # Tasks
    async def save_task(self, task: Task) -> None:
        """Persist a new task."""
        ...

    async def claim_due_tasks(self, now: datetime, limit: int = 50) -> list[Task]:
        """Atomically move due pending tasks to running and return them."""
        ...

    async def complete_task(self, task_id: str) -> None:
        """Mark a task done."""
        ...

    async def fail_task(self, task_id: str, error: str) -> None:
        """Mark a task failed."""
        ...

    async def requeue_running_tasks(self) -> int:
        """Return interrupted running tasks to pending."""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        ...

    async def get_tasks(
        self, status: TaskStatus | None = None, limit: int = 100
    ) -> list[Task]:
        """Get tasks (newest first)."""
        ...

    async def count_open_tasks(self) -> int:
        """Number of pending or running tasks."""
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

    def _db(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Profiles
    async def save_profile(self, profile: Profile) -> None:
        """Create or replace a profile."""
        conn = self._db()
        await conn.execute(
            """
            INSERT OR REPLACE INTO profiles
            (user_id, name, preferred_language, status, last_seen)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                profile.user_id,
                profile.name,
                profile.preferred_language,
                profile.status,
                _to_db(profile.last_seen),
            ),
        )
        await conn.commit()

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile by user ID."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT user_id, name, preferred_language, status, last_seen
            FROM profiles
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return Profile(
            user_id=row[0],
            name=row[1],
            preferred_language=row[2],
            status=row[3],
            last_seen=_from_db(row[4]),
        )

    async def get_preferred_language(self, user_id: str) -> str | None:
        """Get the user's current preferred language."""
        conn = self._db()
        cursor = await conn.execute(
            "SELECT preferred_language FROM profiles WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def set_status(self, user_id: str, status: PresenceStatus) -> bool:
        """Update presence status. Returns False if the profile is missing."""
        conn = self._db()
        cursor = await conn.execute(
            "UPDATE profiles SET status = ?, last_seen = ? WHERE user_id = ?",
            (status, _to_db(datetime.now(timezone.utc)), user_id),
        )
        await conn.commit()
        return cursor.rowcount > 0

    async def search_profiles(self, query: str, limit: int = 20) -> list[Profile]:
        """Find human profiles whose name contains the query."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT user_id, name, preferred_language, status, last_seen
            FROM profiles
            WHERE name LIKE ?
              AND user_id NOT IN (SELECT user_id FROM system_identities)
            ORDER BY name ASC
            LIMIT ?
            """,
            (f"%{query}%", limit),
        )
        rows = await cursor.fetchall()

        return [
            Profile(
                user_id=row[0],
                name=row[1],
                preferred_language=row[2],
                status=row[3],
                last_seen=_from_db(row[4]),
            )
            for row in rows
        ]

    async def ensure_system_identity(self, name: str, language: str) -> str:
        """Return the user ID for a named system identity, creating it if absent."""
        conn = self._db()
        now = _to_db(datetime.now(timezone.utc))

        # The UNIQUE name decides the winner when two callers race.
        await conn.execute(
            """
            INSERT OR IGNORE INTO system_identities (name, user_id, created_at)
            VALUES (?, ?, ?)
            """,
            (name, str(uuid.uuid4()), now),
        )
        cursor = await conn.execute(
            "SELECT user_id FROM system_identities WHERE name = ?",
            (name,),
        )
        row = await cursor.fetchone()
        user_id = row[0]

        await conn.execute(
            """
            INSERT OR IGNORE INTO profiles
            (user_id, name, preferred_language, status, last_seen)
            VALUES (?, ?, ?, 'online', ?)
            """,
            (user_id, name, language, now),
        )
        await conn.commit()
        return user_id

    # Chats
    async def save_chat(self, chat: Chat) -> None:
        """Save a chat, replacing its participant list."""
        conn = self._db()
        await conn.execute(
            """
            INSERT OR REPLACE INTO chats (id, type, name, created_by, last_activity_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                chat.id,
                chat.type,
                chat.name,
                chat.created_by,
                _to_db(chat.last_activity_at),
            ),
        )
        await conn.execute(
            "DELETE FROM chat_participants WHERE chat_id = ?", (chat.id,)
        )
        await conn.executemany(
            """
            INSERT INTO chat_participants (chat_id, user_id, position)
            VALUES (?, ?, ?)
            """,
            [(chat.id, user_id, pos) for pos, user_id in enumerate(chat.participants)],
        )
        await conn.commit()

    async def get_chat(self, chat_id: str) -> Chat | None:
        """Get a chat by ID."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT id, type, name, created_by, last_activity_at
            FROM chats
            WHERE id = ?
            """,
            (chat_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        p_cursor = await conn.execute(
            """
            SELECT user_id
            FROM chat_participants
            WHERE chat_id = ?
            ORDER BY position ASC
            """,
            (chat_id,),
        )
        participants = [p[0] for p in await p_cursor.fetchall()]

        return Chat(
            id=row[0],
            type=row[1],
            name=row[2],
            created_by=row[3],
            last_activity_at=_from_db(row[4]),
            participants=participants,
        )

    async def find_direct_chat(self, user_a: str, user_b: str) -> Chat | None:
        """Find the direct chat between two users."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT c.id
            FROM chats c
            JOIN chat_participants pa ON pa.chat_id = c.id AND pa.user_id = ?
            JOIN chat_participants pb ON pb.chat_id = c.id AND pb.user_id = ?
            WHERE c.type = 'direct'
            LIMIT 1
            """,
            (user_a, user_b),
        )
        row = await cursor.fetchone()
        return await self.get_chat(row[0]) if row else None

    async def list_chats_for_user(self, user_id: str) -> list[Chat]:
        """Chats the user participates in, most recently active first."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT c.id
            FROM chats c
            JOIN chat_participants p ON p.chat_id = c.id
            WHERE p.user_id = ?
            ORDER BY c.last_activity_at DESC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

        chats = []
        for row in rows:
            chat = await self.get_chat(row[0])
            if chat:
                chats.append(chat)
        return chats

    async def touch_chat_activity(self, chat_id: str, timestamp: datetime) -> None:
        """Move last_activity_at forward (never backward)."""
        conn = self._db()
        await conn.execute(
            """
            UPDATE chats
            SET last_activity_at = MAX(last_activity_at, ?)
            WHERE id = ?
            """,
            (_to_db(timestamp), chat_id),
        )
        await conn.commit()

    async def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat with its messages, translations and reply markers."""
        conn = self._db()

        # Parents go first. Guarded inserts racing this delete then either
        # fail their EXISTS check or leave a row the sweeps below remove.
        cursor = await conn.execute("DELETE FROM chats WHERE id = ?", (chat_id,))
        deleted = cursor.rowcount > 0
        await conn.execute(
            "DELETE FROM chat_participants WHERE chat_id = ?", (chat_id,)
        )
        await conn.execute("DELETE FROM messages WHERE chat_id = ?", (chat_id,))
        await conn.execute(
            """
            DELETE FROM translations
            WHERE NOT EXISTS (
                SELECT 1 FROM messages m WHERE m.id = translations.message_id
            )
            """
        )
        await conn.execute(
            """
            DELETE FROM assistant_replies
            WHERE NOT EXISTS (
                SELECT 1 FROM messages m
                WHERE m.id = assistant_replies.trigger_message_id
            )
            """
        )
        await conn.commit()
        return deleted

    # Messages
    async def insert_message(self, message: Message) -> str:
        """Insert a message. Returns its ID."""
        conn = self._db()

        if not message.id:
            message.id = str(uuid.uuid4())

        await conn.execute(
            f"""
            INSERT INTO messages ({_MESSAGE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            _message_values(message),
        )
        await conn.commit()
        return message.id

    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        conn = self._db()
        cursor = await conn.execute(
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        row = await cursor.fetchone()
        return _row_to_message(row) if row else None

    async def get_messages(self, chat_id: str, limit: int = 50) -> list[Message]:
        """Most recent messages of a chat, oldest first."""
        conn = self._db()
        cursor = await conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE chat_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (chat_id, limit),
        )
        rows = await cursor.fetchall()
        return [_row_to_message(row) for row in reversed(rows)]

    async def list_recent_text_messages(
        self, chat_id: str, limit: int
    ) -> list[Message]:
        """Most recent text messages of a chat, oldest first."""
        conn = self._db()
        cursor = await conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE chat_id = ? AND kind = 'text'
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (chat_id, limit),
        )
        rows = await cursor.fetchall()
        return [_row_to_message(row) for row in reversed(rows)]

    async def get_last_message(self, chat_id: str) -> Message | None:
        """Newest message of a chat of any kind."""
        conn = self._db()
        cursor = await conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS}
            FROM messages
            WHERE chat_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """,
            (chat_id,),
        )
        row = await cursor.fetchone()
        return _row_to_message(row) if row else None

    # Assistant replies
    async def insert_assistant_reply(
        self, trigger_message_id: str, reply: Message
    ) -> bool:
        """Store the reply unless one exists for the trigger. Returns True if stored."""
        conn = self._db()

        if not reply.id:
            reply.id = str(uuid.uuid4())

        # The marker row arbitrates redelivered tasks; marker and message
        # share one commit.
        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO assistant_replies
            (trigger_message_id, reply_message_id, created_at)
            SELECT ?, ?, ?
            WHERE EXISTS (SELECT 1 FROM chats WHERE id = ?)
            """,
            (
                trigger_message_id,
                reply.id,
                _to_db(reply.created_at),
                reply.chat_id,
            ),
        )
        if cursor.rowcount != 1:
            await conn.commit()
            return False

        await conn.execute(
            f"""
            INSERT INTO messages ({_MESSAGE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            _message_values(reply),
        )
        await conn.commit()
        return True

    async def has_assistant_reply(self, trigger_message_id: str) -> bool:
        """Whether a reply was already posted for the trigger."""
        conn = self._db()
        cursor = await conn.execute(
            "SELECT 1 FROM assistant_replies WHERE trigger_message_id = ?",
            (trigger_message_id,),
        )
        return await cursor.fetchone() is not None

    # Stickers
    async def save_sticker(self, sticker: Sticker) -> None:
        """Save or replace a catalog sticker."""
        conn = self._db()

        if not sticker.id:
            sticker.id = str(uuid.uuid4())

        await conn.execute(
            """
            INSERT OR REPLACE INTO stickers
            (id, name, category, tags, image_ref, uploaded_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                sticker.id,
                sticker.name,
                sticker.category,
                json.dumps(sticker.tags),
                sticker.image_ref,
                sticker.uploaded_by,
                _to_db(sticker.created_at),
            ),
        )
        await conn.commit()

    async def get_sticker(self, sticker_id: str) -> Sticker | None:
        conn = self._db()
        cursor = await conn.execute(
            f"SELECT {_STICKER_COLUMNS} FROM stickers WHERE id = ?",
            (sticker_id,),
        )
        row = await cursor.fetchone()
        return _row_to_sticker(row) if row else None

    async def list_stickers(self, category: str | None = None) -> list[Sticker]:
        """Catalog stickers by name, optionally for one category."""
        conn = self._db()

        query = f"SELECT {_STICKER_COLUMNS} FROM stickers"
        params: list = []

        if category:
            query += " WHERE category = ?"
            params.append(category)

        query += " ORDER BY name ASC, id ASC"

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        return [_row_to_sticker(row) for row in rows]

    async def list_sticker_categories(self) -> list[str]:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT DISTINCT category FROM stickers ORDER BY category ASC"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    # Translations
    async def try_insert_translation(self, translation: Translation) -> bool:
        """Insert unless (message_id, target_language) exists. Returns True if inserted."""
        conn = self._db()

        # Single statement: the UNIQUE constraint arbitrates concurrent writers,
        # and the EXISTS clause keeps rows for deleted messages out.
        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO translations
            (message_id, target_language, translated_text, original_text, created_at)
            SELECT ?, ?, ?, ?, ?
            WHERE EXISTS (SELECT 1 FROM messages WHERE id = ?)
            """,
            (
                translation.message_id,
                translation.target_language,
                translation.translated_text,
                translation.original_text,
                _to_db(translation.created_at),
                translation.message_id,
            ),
        )
        await conn.commit()
        return cursor.rowcount == 1

    async def get_translation(
        self, message_id: str, target_language: str
    ) -> Translation | None:
        """Get the translation of a message into a language."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT message_id, target_language, translated_text, original_text, created_at
            FROM translations
            WHERE message_id = ? AND target_language = ?
            """,
            (message_id, target_language),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return Translation(
            message_id=row[0],
            target_language=row[1],
            translated_text=row[2],
            original_text=row[3],
            created_at=_from_db(row[4]),
        )

    async def get_translations(self, message_id: str) -> list[Translation]:
        """All translations of a message."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT message_id, target_language, translated_text, original_text, created_at
            FROM translations
            WHERE message_id = ?
            ORDER BY target_language ASC
            """,
            (message_id,),
        )
        rows = await cursor.fetchall()

        return [
            Translation(
                message_id=row[0],
                target_language=row[1],
                translated_text=row[2],
                original_text=row[3],
                created_at=_from_db(row[4]),
            )
            for row in rows
        ]

    # Tasks
    async def save_task(self, task: Task) -> None:
        """Persist a new task."""
        conn = self._db()

        if not task.id:
            task.id = str(uuid.uuid4())

        await conn.execute(
            f"""
            INSERT INTO tasks ({_TASK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.task_type.value,
                json.dumps(task.payload),
                _to_db(task.run_at),
                task.status,
                task.attempts,
                task.last_error,
                _to_db(task.created_at),
            ),
        )
        await conn.commit()

    async def claim_due_tasks(self, now: datetime, limit: int = 50) -> list[Task]:
        """Atomically move due pending tasks to running and return them."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT id
            FROM tasks
            WHERE status = 'pending' AND run_at <= ?
            ORDER BY run_at ASC
            LIMIT ?
            """,
            (_to_db(now), limit),
        )
        candidates = [row[0] for row in await cursor.fetchall()]

        claimed = []
        for task_id in candidates:
            # Only the caller whose UPDATE matched the pending row owns the task.
            update = await conn.execute(
                """
                UPDATE tasks
                SET status = 'running', attempts = attempts + 1
                WHERE id = ? AND status = 'pending'
                """,
                (task_id,),
            )
            if update.rowcount == 1:
                claimed.append(task_id)
        await conn.commit()

        tasks = []
        for task_id in claimed:
            task = await self.get_task(task_id)
            if task:
                tasks.append(task)
        return tasks

    async def complete_task(self, task_id: str) -> None:
        """Mark a task done."""
        conn = self._db()
        await conn.execute(
            "UPDATE tasks SET status = 'done', last_error = NULL WHERE id = ?",
            (task_id,),
        )
        await conn.commit()

    async def fail_task(self, task_id: str, error: str) -> None:
        """Mark a task failed."""
        conn = self._db()
        await conn.execute(
            "UPDATE tasks SET status = 'failed', last_error = ? WHERE id = ?",
            (error, task_id),
        )
        await conn.commit()

    async def requeue_running_tasks(self) -> int:
        """Return interrupted running tasks to pending."""
        conn = self._db()
        cursor = await conn.execute(
            "UPDATE tasks SET status = 'pending' WHERE status = 'running'"
        )
        await conn.commit()
        return cursor.rowcount

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        conn = self._db()
        cursor = await conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return _row_to_task(row) if row else None

    async def get_tasks(
        self, status: TaskStatus | None = None, limit: int = 100
    ) -> list[Task]:
        """Get tasks (newest first)."""
        conn = self._db()

        if status:
            cursor = await conn.execute(
                f"""
                SELECT {_TASK_COLUMNS}
                FROM tasks
                WHERE status = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (status, limit),
            )
        else:
            cursor = await conn.execute(
                f"""
                SELECT {_TASK_COLUMNS}
                FROM tasks
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (limit,),
            )

        rows = await cursor.fetchall()
        return [_row_to_task(row) for row in rows]

    async def count_open_tasks(self) -> int:
        """Number of pending or running tasks."""
        conn = self._db()
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM tasks WHERE status IN ('pending', 'running')"
        )
        row = await cursor.fetchone()
        return row[0]

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._db()
        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data),
                _to_db(event.timestamp),
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
        """Get trace events with optional filters."""
        conn = self._db()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(_to_db(after))
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
                timestamp=_from_db(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._db()

        tables = [
            "translations",
            "assistant_replies",
            "messages",
            "chat_participants",
            "chats",
            "system_identities",
            "profiles",
            "stickers",
            "tasks",
            "trace_events",
        ]

        for table in tables:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
