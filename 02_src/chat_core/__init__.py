"""Chat core: realtime conversation synchronization for the tutoring dashboard."""

from .app import Application, IApplication
from .attachments import AttachmentPipeline, IBlobStore, LocalBlobStore
from .chat import (
    ChatSession,
    ConversationNameResolver,
    MessageStore,
    ReadReceiptTracker,
    RealtimeIngestion,
    group_by_date,
)
from .errors import (
    ChatError,
    IdentityUnavailable,
    NameResolutionFailed,
    PersistedWriteFailed,
    ReceiptWriteFailed,
    UnsupportedAttachment,
    UploadFailed,
    UploadTooLarge,
)
from .identity import IIdentityService, StaticIdentity
from .models import (
    Account,
    AttachmentFile,
    AttachmentMeta,
    Conversation,
    DeliveryStatus,
    Message,
    MessageDraft,
    MessageType,
    Participant,
    ReadReceipt,
)
from .realtime import BroadcastPayload, IRealtimeBroker, RealtimeBroker
from .storage import IStorage, Storage

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Account",
    "AttachmentFile",
    "AttachmentMeta",
    "Conversation",
    "DeliveryStatus",
    "Message",
    "MessageDraft",
    "MessageType",
    "Participant",
    "ReadReceipt",
    "BroadcastPayload",
    # Errors
    "ChatError",
    "IdentityUnavailable",
    "NameResolutionFailed",
    "PersistedWriteFailed",
    "ReceiptWriteFailed",
    "UnsupportedAttachment",
    "UploadFailed",
    "UploadTooLarge",
    # Components
    "IStorage",
    "Storage",
    "IIdentityService",
    "StaticIdentity",
    "IRealtimeBroker",
    "RealtimeBroker",
    "IBlobStore",
    "LocalBlobStore",
    "AttachmentPipeline",
    "MessageStore",
    "RealtimeIngestion",
    "ReadReceiptTracker",
    "ConversationNameResolver",
    "ChatSession",
    "group_by_date",
]
