"""Application bootstrap and lifecycle management."""

import asyncio
import os
from pathlib import Path
from typing import Protocol

from .attachments import AttachmentPipeline, LocalBlobStore
from .chat import ChatSession, ConversationNameResolver, ReadReceiptTracker
from .config import ATTACHMENTS_DIR, resolve_db_path
from .identity import StaticIdentity
from .logging_config import get_logger
from .realtime import RealtimeBroker
from .storage import Storage

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...

    async def open_session(self, conversation_id: str, viewer_id: str) -> ChatSession:
        """Get or mount the chat session for a viewer."""
        ...

    async def close_session(self, conversation_id: str, viewer_id: str) -> bool:
        """Unmount a chat session."""
        ...

    @property
    def attachments(self) -> AttachmentPipeline:
        """Get attachment pipeline instance."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        attachments_dir: str | Path | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._attachments_dir = Path(attachments_dir) if attachments_dir else ATTACHMENTS_DIR

        # Components (will be initialized in start())
        self._storage: Storage | None = None
        self._broker: RealtimeBroker | None = None
        self._blob_store: LocalBlobStore | None = None
        self._attachments: AttachmentPipeline | None = None
        self._resolver: ConversationNameResolver | None = None
        self._receipts: ReadReceiptTracker | None = None
        self._sessions: dict[tuple[str, str], ChatSession] = {}
        self._session_locks: dict[tuple[str, str], asyncio.Lock] = {}

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Realtime broker
        self._broker = RealtimeBroker()

        # 3. Blob store + attachment pipeline
        self._blob_store = LocalBlobStore(self._attachments_dir)
        self._attachments = AttachmentPipeline(self._blob_store)
        logger.info("Attachments stored under %s", self._blob_store.root)

        # 4. Name resolver and receipt tracker (depend on Storage)
        self._resolver = ConversationNameResolver(self._storage)
        self._receipts = ReadReceiptTracker(self._storage)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        await self._close_sessions()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        await self._close_sessions()

        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        if self._resolver:
            self._resolver.invalidate()
            logger.info("Reset complete")

    async def open_session(self, conversation_id: str, viewer_id: str) -> ChatSession:
        """Get or mount the chat session for a viewer."""
        key = (conversation_id, viewer_id)
        # Concurrent opens for the same pair wait for the first mount
        lock = self._session_locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._sessions:
                return self._sessions[key]

            session = ChatSession(
                conversation_id=conversation_id,
                identity=StaticIdentity(viewer_id),
                storage=self.storage,
                broker=self.broker,
                attachments=self.attachments,
                resolver=self.resolver,
                receipts=self._receipts,
            )
            await session.mount()
            self._sessions[key] = session
            return session

    async def close_session(self, conversation_id: str, viewer_id: str) -> bool:
        """Unmount a chat session."""
        session = self._sessions.pop((conversation_id, viewer_id), None)
        if session is None:
            return False
        await session.unmount()
        return True

    async def _close_sessions(self) -> None:
        for session in reversed(list(self._sessions.values())):
            await session.unmount()
        self._sessions.clear()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def attachments_dir(self) -> Path:
        return self._attachments_dir

    @property
    def storage(self) -> Storage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def broker(self) -> RealtimeBroker:
        """Get realtime broker instance."""
        if not self._broker:
            raise RuntimeError("Application not started")
        return self._broker

    @property
    def attachments(self) -> AttachmentPipeline:
        """Get attachment pipeline instance."""
        if not self._attachments:
            raise RuntimeError("Application not started")
        return self._attachments

    @property
    def resolver(self) -> ConversationNameResolver:
        """Get conversation name resolver instance."""
        if not self._resolver:
            raise RuntimeError("Application not started")
        return self._resolver
