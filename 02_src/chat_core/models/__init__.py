"""Core data models for the chat core."""

from .attachments import AttachmentFile, AttachmentMeta
from .conversations import Account, Conversation, Participant, ReadReceipt
from .messages import DeliveryStatus, Message, MessageDraft, MessageType

__all__ = [
    # Messages
    "Message",
    "MessageDraft",
    "MessageType",
    "DeliveryStatus",
    # Conversations
    "Account",
    "Conversation",
    "Participant",
    "ReadReceipt",
    # Attachments
    "AttachmentFile",
    "AttachmentMeta",
]
