"""Blob storage for message attachments."""

import asyncio
from pathlib import Path
from typing import Protocol

from ..config import ATTACHMENTS_BASE_URL, ATTACHMENTS_DIR
from ..logging_config import get_logger

logger = get_logger(__name__)


class IBlobStore(Protocol):
    """Where attachment bytes live."""

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under key."""
        ...

    def public_url(self, key: str) -> str:
        """URL at which the stored object can be fetched."""
        ...


class LocalBlobStore:
    """Filesystem-backed blob store, served by the HTTP API."""

    def __init__(self, root: str | Path | None = None, base_url: str = ATTACHMENTS_BASE_URL):
        self._root = Path(root) if root is not None else ATTACHMENTS_DIR
        self._root.mkdir(parents=True, exist_ok=True)
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Invalid attachment key: {key}")
        return path

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under key."""
        path = self._path_for(key)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info("Stored attachment %s (%s, %s bytes)", key, content_type, len(data))

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/{key}"
