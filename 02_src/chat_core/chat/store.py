"""Message store and reconciliation engine for one open conversation."""

import uuid
from datetime import datetime, timezone
from typing import Iterable

from ..logging_config import get_logger
from ..models import DeliveryStatus, Message, MessageDraft
from ..realtime import BroadcastPayload

logger = get_logger(__name__)


class MessageStore:
    """Canonical in-memory timeline of a conversation.

    Three kinds of writes land here: optimistic local sends, persisted-store
    confirmations and realtime broadcasts from other sessions. Rendering order
    is append order; the sequence is never re-sorted by ``created_at``.
    """

    def __init__(self, conversation_id: str, viewer_id: str | None = None):
        self._conversation_id = conversation_id
        self._viewer_id = viewer_id
        self._messages: list[Message] = []
        self.pending_input = ""

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def viewer_id(self) -> str | None:
        return self._viewer_id

    def set_viewer(self, viewer_id: str | None) -> None:
        self._viewer_id = viewer_id

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the timeline."""
        return self._messages.copy()

    def __len__(self) -> int:
        return len(self._messages)

    def initialize(self, conversation_id: str, initial_messages: Iterable[Message]) -> list[Message]:
        """Replace the timeline with a persisted snapshot (oldest first)."""
        self._conversation_id = conversation_id
        self._messages = list(initial_messages)
        logger.debug(
            "Initialized conversation %s with %s messages",
            conversation_id,
            len(self._messages),
        )
        return self.messages

    def append_optimistic(self, draft: MessageDraft) -> Message:
        """Append a locally authored message before any backend confirmation."""
        message = Message(
            id=None,
            conversation_id=self._conversation_id,
            content=draft.content,
            created_at=datetime.now(timezone.utc),
            sender_id=draft.sender_id,
            message_type=draft.message_type,
            attachment_url=draft.attachment_url,
            attachment_name=draft.attachment_name,
            sender_first_name=draft.sender_first_name,
            read=False,
            client_id=str(uuid.uuid4()),
            status=DeliveryStatus.PENDING,
        )
        self._messages.append(message)
        self.pending_input = ""
        return message

    def append_remote(self, payload: BroadcastPayload) -> Message | None:
        """Ingest a realtime broadcast. Returns the appended message, if any."""
        if payload.conversation_id and payload.conversation_id != self._conversation_id:
            return None

        if payload.client_id:
            local = self.find(payload.client_id)
            if local is not None:
                # Our own optimistic entry coming back: reconcile, don't re-append
                if local.id is None and payload.message_id:
                    local.id = payload.message_id
                local.status = DeliveryStatus.SENT
                return None

        if self._viewer_id and payload.sender_id == self._viewer_id:
            return None

        if payload.message_id and any(m.id == payload.message_id for m in self._messages):
            return None

        message = Message(
            id=payload.message_id,
            conversation_id=self._conversation_id,
            content=payload.content,
            created_at=payload.sent_at or datetime.now(timezone.utc),
            sender_id=payload.sender_id,
            message_type=payload.message_type,
            attachment_url=payload.attachment_url or None,
            sender_first_name=payload.first_name or None,
            read=False,
            client_id=payload.client_id,
        )
        self._messages.append(message)
        return message

    def commit_persisted(self, client_id: str, persisted_id: str) -> None:
        """Back-fill the persisted id onto an optimistic entry."""
        message = self.find(client_id)
        if message is None:
            logger.warning("No local message for client_id %s", client_id)
            return
        message.id = persisted_id
        message.status = DeliveryStatus.SENT

    def mark_failed(self, client_id: str) -> None:
        """Flag an optimistic entry whose persisted write failed (no rollback)."""
        message = self.find(client_id)
        if message is not None:
            message.status = DeliveryStatus.FAILED

    def mark_pending(self, client_id: str) -> None:
        message = self.find(client_id)
        if message is not None:
            message.status = DeliveryStatus.PENDING

    def mark_read(self, message_id: str) -> None:
        for message in self._messages:
            if message.id == message_id:
                message.read = True

    def unread(self, exclude_sender: str | None = None) -> list[Message]:
        return [
            m
            for m in self._messages
            if not m.read and (exclude_sender is None or m.sender_id != exclude_sender)
        ]

    def find(self, client_id: str) -> Message | None:
        for message in self._messages:
            if message.client_id == client_id:
                return message
        return None
