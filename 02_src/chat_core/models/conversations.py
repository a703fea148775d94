"""Conversation-related data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    """A platform account (tutor or student profile)."""

    id: str
    first_name: str | None = None


@dataclass
class Conversation:
    """A chat conversation."""

    id: str
    title: str | None = None  # None or "" means unset
    updated_at: datetime | None = None


@dataclass
class Participant:
    """Membership of an account in a conversation."""

    conversation_id: str
    user_id: str


@dataclass
class ReadReceipt:
    """A viewer has seen a message."""

    message_id: str
    user_id: str
    read_at: datetime
