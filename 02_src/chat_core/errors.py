"""Error taxonomy for the chat core."""


class ChatError(Exception):
    """Base class for chat core errors."""


class IdentityUnavailable(ChatError):
    """Current viewer could not be resolved."""


class UploadTooLarge(ChatError):
    """Attachment exceeds the size ceiling; rejected before any upload."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File size {size} exceeds the limit of {limit // (1024 * 1024)}MB"
        )
        self.size = size
        self.limit = limit


class UnsupportedAttachment(ChatError):
    """Attachment extension is not accepted at the input boundary."""


class UploadFailed(ChatError):
    """Blob store upload failed or returned no public URL."""


class PersistedWriteFailed(ChatError):
    """Message insert into the persisted store failed."""


class ReceiptWriteFailed(ChatError):
    """Read receipt upsert failed."""


class NameResolutionFailed(ChatError):
    """Conversation title could not be read."""
