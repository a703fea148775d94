"""Broadcast payload wire contract."""

from datetime import datetime

from pydantic import BaseModel

from ..models import MessageType


class BroadcastPayload(BaseModel):
    """Payload published on the realtime channel for every sent message.

    ``created_at`` is a pre-formatted display string; ``sent_at`` carries the
    machine-readable timestamp. ``conversation_id``, ``client_id`` and
    ``message_id`` are optional so that payloads from older publishers still
    validate.
    """

    sender_id: str
    content: str
    first_name: str | None = None
    created_at: str | None = None
    attachment_url: str | None = None
    message_type: MessageType = MessageType.TEXT
    conversation_id: str | None = None
    client_id: str | None = None
    message_id: str | None = None
    sent_at: datetime | None = None
