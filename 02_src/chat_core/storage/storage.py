"""SQLite storage implementation."""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import NameResolutionFailed, PersistedWriteFailed, ReceiptWriteFailed
from ..models import (
    Account,
    Conversation,
    Message,
    MessageType,
    Participant,
    ReadReceipt,
)


class IStorage(Protocol):
    """Persisted store for conversations, messages and read receipts."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Messages
    async def read_messages(
        self, conversation_id: str, viewer_id: str | None = None
    ) -> list[Message]:
        """Get messages for a conversation, oldest first."""
        ...

    async def insert_message(self, message: Message) -> str:
        """Insert a message and return its persisted id."""
        ...

    # Conversations
    async def read_conversation_title(self, conversation_id: str) -> str | None:
        """Get the explicit title of a conversation."""
        ...

    async def read_participants(self, conversation_id: str) -> list[str]:
        """Get participant user ids in join order."""
        ...

    async def touch_conversation_updated_at(
        self, conversation_id: str, timestamp: datetime
    ) -> None:
        """Bump the conversation's updated_at."""
        ...

    # Accounts
    async def read_account_first_name(self, user_id: str) -> str | None:
        """Get an account's first name."""
        ...

    # Read receipts
    async def upsert_read_receipt(self, receipt: ReadReceipt) -> None:
        """Create or overwrite a read receipt."""
        ...


def _to_iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    # Stored as UTC so lexical order matches chronological order
    return ts.astimezone(timezone.utc).isoformat()


def _from_iso(value: str) -> datetime:
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

    # Messages
    async def read_messages(
        self, conversation_id: str, viewer_id: str | None = None
    ) -> list[Message]:
        """Get messages for a conversation, oldest first.

        ``read`` reflects whether ``viewer_id`` has a receipt for the message.
        """
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT m.id, m.conversation_id, m.content, m.created_at, m.sender_id,
                   m.message_type, m.attachment_url, m.attachment_name,
                   a.first_name, m.client_id,
                   EXISTS (
                       SELECT 1 FROM message_reads r
                       WHERE r.message_id = m.id AND r.user_id = ?
                   )
            FROM messages m
            LEFT JOIN accounts a ON a.id = m.sender_id
            WHERE m.conversation_id = ?
            ORDER BY m.created_at ASC, m.rowid ASC
            """,
            (viewer_id, conversation_id),
        )
        rows = await cursor.fetchall()

        return [
            Message(
                id=row[0],
                conversation_id=row[1],
                content=row[2],
                created_at=_from_iso(row[3]),
                sender_id=row[4],
                message_type=MessageType(row[5]),
                attachment_url=row[6],
                attachment_name=row[7],
                sender_first_name=row[8],
                client_id=row[9],
                read=bool(row[10]),
            )
            for row in rows
        ]

    async def insert_message(self, message: Message) -> str:
        """Insert a message and return its persisted id."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        msg_id = message.id or str(uuid.uuid4())

        try:
            await self._conn.execute(
                """
                INSERT INTO messages
                (id, conversation_id, sender_id, content, message_type,
                 attachment_url, attachment_name, client_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    msg_id,
                    message.conversation_id,
                    message.sender_id,
                    message.content,
                    message.message_type.value,
                    message.attachment_url,
                    message.attachment_name,
                    message.client_id,
                    _to_iso(message.created_at),
                ),
            )
            await self._conn.commit()
        except aiosqlite.Error as e:
            raise PersistedWriteFailed(f"Error sending message: {e}") from e

        return msg_id

    # Conversations
    async def save_conversation(self, conversation: Conversation) -> None:
        """Save a conversation."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT OR REPLACE INTO conversations (id, title, updated_at)
            VALUES (?, ?, ?)
            """,
            (
                conversation.id,
                conversation.title,
                _to_iso(conversation.updated_at) if conversation.updated_at else None,
            ),
        )
        await self._conn.commit()

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            "SELECT id, title, updated_at FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return Conversation(
            id=row[0],
            title=row[1],
            updated_at=_from_iso(row[2]) if row[2] else None,
        )

    async def read_conversation_title(self, conversation_id: str) -> str | None:
        """Get the explicit title of a conversation (None if unset or unknown)."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        try:
            cursor = await self._conn.execute(
                "SELECT title FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise NameResolutionFailed(
                f"Error fetching conversation name: {e}"
            ) from e

        return row[0] if row else None

    async def add_participant(self, participant: Participant) -> None:
        """Add an account to a conversation."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT OR IGNORE INTO conversation_participants (conversation_id, user_id)
            VALUES (?, ?)
            """,
            (participant.conversation_id, participant.user_id),
        )
        await self._conn.commit()

    async def read_participants(self, conversation_id: str) -> list[str]:
        """Get participant user ids in join order."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT user_id FROM conversation_participants
            WHERE conversation_id = ?
            ORDER BY rowid ASC
            """,
            (conversation_id,),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def touch_conversation_updated_at(
        self, conversation_id: str, timestamp: datetime
    ) -> None:
        """Bump the conversation's updated_at."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            "UPDATE conversations SET updated_at = ? WHERE id = ?",
            (_to_iso(timestamp), conversation_id),
        )
        await self._conn.commit()

    # Accounts
    async def save_account(self, account: Account) -> None:
        """Save an account."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        await self._conn.execute(
            """
            INSERT OR REPLACE INTO accounts (id, first_name)
            VALUES (?, ?)
            """,
            (account.id, account.first_name),
        )
        await self._conn.commit()

    async def read_account_first_name(self, user_id: str) -> str | None:
        """Get an account's first name."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            "SELECT first_name FROM accounts WHERE id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    # Read receipts
    async def upsert_read_receipt(self, receipt: ReadReceipt) -> None:
        """Create or overwrite a read receipt."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        try:
            await self._conn.execute(
                """
                INSERT INTO message_reads (message_id, user_id, read_at)
                VALUES (?, ?, ?)
                ON CONFLICT (message_id, user_id)
                DO UPDATE SET read_at = excluded.read_at
                """,
                (receipt.message_id, receipt.user_id, _to_iso(receipt.read_at)),
            )
            await self._conn.commit()
        except aiosqlite.Error as e:
            raise ReceiptWriteFailed(f"Error marking message as read: {e}") from e

    async def get_read_receipts(self, message_id: str) -> list[ReadReceipt]:
        """Get all receipts recorded for a message."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        cursor = await self._conn.execute(
            """
            SELECT message_id, user_id, read_at
            FROM message_reads
            WHERE message_id = ?
            ORDER BY read_at ASC
            """,
            (message_id,),
        )
        rows = await cursor.fetchall()

        return [
            ReadReceipt(message_id=row[0], user_id=row[1], read_at=_from_iso(row[2]))
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        if not self._conn:
            raise RuntimeError("Storage not initialized")

        tables = [
            "message_reads",
            "messages",
            "conversation_participants",
            "conversations",
            "accounts",
        ]

        for table in tables:
            await self._conn.execute(f"DELETE FROM {table}")

        await self._conn.commit()
