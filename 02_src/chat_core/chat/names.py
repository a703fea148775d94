"""Conversation display-name resolution."""

from ..logging_config import get_logger
from ..models import Message
from ..storage import IStorage

logger = get_logger(__name__)

FALLBACK_TITLE = "Untitled Conversation"
ANONYMOUS_SENDER = "Anonymous"


class ConversationNameResolver:
    """Single source of truth for conversation titles, memoized per conversation.

    An explicit title wins. Without one the conversation is treated as a
    direct chat and named after its counterpart participant.
    """

    def __init__(self, storage: IStorage):
        self._storage = storage
        self._cache: dict[tuple[str, str | None], str] = {}

    async def resolve(self, conversation_id: str, viewer_id: str | None = None) -> str | None:
        """Return the display title, or None if the title could not be read."""
        key = (conversation_id, viewer_id)
        if key in self._cache:
            return self._cache[key]

        try:
            title = await self._storage.read_conversation_title(conversation_id)
        except Exception as e:
            logger.error("Error fetching conversation name: %s", e, exc_info=True)
            return None

        if not title:
            try:
                title = await self._counterpart_name(conversation_id, viewer_id)
            except Exception as e:
                logger.error(
                    "Error resolving counterpart for %s: %s", conversation_id, e, exc_info=True
                )
                return None

        resolved = title or FALLBACK_TITLE
        self._cache[key] = resolved
        return resolved

    async def _counterpart_name(self, conversation_id: str, viewer_id: str | None) -> str | None:
        participants = await self._storage.read_participants(conversation_id)
        if not participants:
            return None

        others = [user_id for user_id in participants if user_id != viewer_id]
        counterpart = others[0] if others else participants[0]
        return await self._storage.read_account_first_name(counterpart)

    def invalidate(self, conversation_id: str | None = None) -> None:
        """Forget cached titles (all of them when no id is given)."""
        if conversation_id is None:
            self._cache.clear()
        else:
            for key in [k for k in self._cache if k[0] == conversation_id]:
                del self._cache[key]


def sender_label(message: Message) -> str:
    """Name shown above someone else's message."""
    return message.sender_first_name or ANONYMOUS_SENDER
