"""Read-receipt tracking."""

from datetime import datetime, timezone

from ..config import EXCLUDE_OWN_RECEIPTS
from ..logging_config import get_logger
from ..models import ReadReceipt
from ..storage import IStorage
from .store import MessageStore

logger = get_logger(__name__)


class ReadReceiptTracker:
    """Marks every unread message in view as read by the viewer."""

    def __init__(self, storage: IStorage, exclude_own_messages: bool = EXCLUDE_OWN_RECEIPTS):
        self._storage = storage
        self._exclude_own = exclude_own_messages

    async def scan(self, store: MessageStore, viewer_id: str | None) -> int:
        """Upsert a receipt for each unread message; return how many were marked.

        Messages that have no persisted id yet are skipped; the next scan after
        their id is back-filled picks them up. A failed upsert leaves the local
        flag untouched so the message is retried on the next scan.
        """
        if not viewer_id:
            return 0

        exclude = viewer_id if self._exclude_own else None
        marked = 0

        for message in store.unread(exclude_sender=exclude):
            if message.id is None:
                continue

            receipt = ReadReceipt(
                message_id=message.id,
                user_id=viewer_id,
                read_at=datetime.now(timezone.utc),
            )
            try:
                await self._storage.upsert_read_receipt(receipt)
            except Exception as e:
                logger.error(
                    "Error marking message %s as read: %s", message.id, e, exc_info=True
                )
                continue

            store.mark_read(message.id)
            marked += 1

        return marked
