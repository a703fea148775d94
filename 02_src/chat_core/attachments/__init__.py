"""Attachments module."""

from .blob_store import IBlobStore, LocalBlobStore
from .pipeline import AttachmentPipeline, classify

__all__ = ["AttachmentPipeline", "IBlobStore", "LocalBlobStore", "classify"]
