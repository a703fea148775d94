"""Message-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MessageType(str, Enum):
    """Message type tag derived from the attachment (if any)."""

    TEXT = "text"
    IMAGE = "image"
    PDF = "pdf"
    DOCX = "docx"


class DeliveryStatus(str, Enum):
    """Delivery state of a locally authored message."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class Message:
    """A single chat message in a conversation's timeline."""

    id: str | None  # None until the persisted store has confirmed it
    conversation_id: str
    content: str
    created_at: datetime
    sender_id: str
    message_type: MessageType = MessageType.TEXT
    attachment_url: str | None = None
    attachment_name: str | None = None
    sender_first_name: str | None = None
    read: bool = False
    client_id: str | None = None  # correlation id for optimistic entries
    status: DeliveryStatus = DeliveryStatus.SENT


@dataclass
class MessageDraft:
    """What the viewer is about to send."""

    content: str
    sender_id: str
    sender_first_name: str | None = None
    message_type: MessageType = MessageType.TEXT
    attachment_url: str | None = None
    attachment_name: str | None = None
