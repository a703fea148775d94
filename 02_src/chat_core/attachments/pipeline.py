"""Attachment validation, upload and classification."""

import mimetypes
import time
from pathlib import PurePath

from ..config import ACCEPTED_EXTENSIONS, MAX_ATTACHMENT_BYTES
from ..errors import UnsupportedAttachment, UploadFailed, UploadTooLarge
from ..logging_config import get_logger
from ..models import AttachmentFile, AttachmentMeta, MessageType
from .blob_store import IBlobStore

logger = get_logger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DEFAULT_MIME_TYPE = "application/octet-stream"

mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type(DOCX_MIME_TYPE, ".docx")


def classify(mime_type: str) -> MessageType:
    """Message type tag for an attachment MIME type.

    Video is accepted at the input boundary but has no render branch, so it
    falls through to text like any other unknown type.
    """
    if mime_type.startswith("image/"):
        return MessageType.IMAGE
    if mime_type == "application/pdf":
        return MessageType.PDF
    if mime_type == DOCX_MIME_TYPE:
        return MessageType.DOCX
    return MessageType.TEXT


def mime_type_of(file: AttachmentFile) -> str:
    if file.content_type:
        return file.content_type
    guessed, _ = mimetypes.guess_type(file.name)
    return guessed or DEFAULT_MIME_TYPE


class AttachmentPipeline:
    """Validates a selected file and uploads it to the blob store."""

    def __init__(
        self,
        blob_store: IBlobStore,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
        accepted_extensions: tuple[str, ...] = ACCEPTED_EXTENSIONS,
    ):
        self._blob_store = blob_store
        self._max_bytes = max_bytes
        self._accepted = tuple(ext.lower() for ext in accepted_extensions)

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def validate(self, file: AttachmentFile) -> None:
        """Reject a file at selection time."""
        if file.extension not in self._accepted:
            raise UnsupportedAttachment(
                f"{file.name}: accepted types are {', '.join(self._accepted)}"
            )
        if file.size > self._max_bytes:
            raise UploadTooLarge(file.size, self._max_bytes)

    async def store(self, file: AttachmentFile) -> AttachmentMeta:
        """Upload the file and return where it lives."""
        if file.size > self._max_bytes:
            raise UploadTooLarge(file.size, self._max_bytes)

        key = f"{int(time.time() * 1000)}-{PurePath(file.name).name}"
        mime_type = mime_type_of(file)

        try:
            await self._blob_store.upload(key, file.data, mime_type)
        except Exception as e:
            logger.error("Error uploading file %s: %s", file.name, e, exc_info=True)
            raise UploadFailed(f"Error uploading file: {e}") from e

        url = self._blob_store.public_url(key)
        if not url:
            raise UploadFailed(f"No public URL for {key}")

        return AttachmentMeta(url=url, mime_type=mime_type)
