"""Realtime event ingestion for an open conversation."""

from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from ..config import REALTIME_CHANNEL, REALTIME_EVENT
from ..logging_config import get_logger
from ..models import Message
from ..realtime import BroadcastPayload, IChannel, IRealtimeBroker
from .store import MessageStore

logger = get_logger(__name__)


MessageCallback = Callable[[Message], Awaitable[None]]


class RealtimeIngestion:
    """Binds one channel/event pair and feeds broadcasts into a MessageStore."""

    def __init__(
        self,
        broker: IRealtimeBroker,
        store: MessageStore,
        channel: str = REALTIME_CHANNEL,
        event_name: str = REALTIME_EVENT,
        on_message: MessageCallback | None = None,
    ):
        self._broker = broker
        self._store = store
        self._channel_name = channel
        self._event_name = event_name
        self._on_message = on_message
        self._handle: IChannel | None = None

    @property
    def subscribed(self) -> bool:
        return self._handle is not None

    async def start(self, viewer_id: str) -> None:
        """Subscribe once the viewer is known."""
        if self._handle is not None:
            return

        self._store.set_viewer(viewer_id)
        self._handle = self._broker.subscribe(self._channel_name)
        self._handle.bind(self._event_name, self._handle_event)
        logger.info(
            "Listening on %s/%s for conversation %s",
            self._channel_name,
            self._event_name,
            self._store.conversation_id,
        )

    async def stop(self) -> None:
        """Unbind and release the channel."""
        if self._handle is None:
            return

        self._handle.unbind_all()
        self._broker.unsubscribe(self._handle)
        self._handle = None

    async def __aenter__(self) -> "RealtimeIngestion":
        # Subscribes for the store's viewer; an unknown viewer waits for start()
        if self._store.viewer_id:
            await self.start(self._store.viewer_id)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _handle_event(self, data: dict[str, Any]) -> None:
        try:
            payload = BroadcastPayload.model_validate(data)
        except ValidationError as e:
            logger.warning("Dropping malformed %s event: %s", self._event_name, e)
            return

        message = self._store.append_remote(payload)
        if message is None:
            return

        logger.debug(
            "Received message from %s in %s",
            message.sender_id,
            self._store.conversation_id,
        )
        if self._on_message:
            await self._on_message(message)
