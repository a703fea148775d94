"""Attachment data models."""

from dataclasses import dataclass
from pathlib import PurePath


@dataclass
class AttachmentFile:
    """A file selected at the input boundary."""

    name: str
    data: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lower()


@dataclass
class AttachmentMeta:
    """Result of storing an attachment: where it lives and what it is."""

    url: str
    mime_type: str
