"""In-process realtime broker with channel/event pub/sub."""

import asyncio
from typing import Any, Awaitable, Callable, Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[dict[str, Any]], Awaitable[None]]


class IChannel(Protocol):
    """A subscription handle on one channel."""

    @property
    def name(self) -> str:
        """Channel name."""
        ...

    def bind(self, event_name: str, handler: EventHandler) -> None:
        """Call handler for every event_name published on the channel."""
        ...

    def unbind_all(self) -> None:
        """Drop all handlers bound on this handle."""
        ...


class IRealtimeBroker(Protocol):
    """Push channel used to propagate messages to other open chat sessions."""

    def subscribe(self, channel: str) -> IChannel:
        """Subscribe to a channel and return the handle."""
        ...

    def unsubscribe(self, handle: IChannel) -> None:
        """Release a subscription handle."""
        ...

    async def publish(self, channel: str, event_name: str, payload: dict[str, Any]) -> None:
        """Deliver payload to every handler bound to event_name on channel."""
        ...


class Channel:
    """Subscription handle returned by RealtimeBroker.subscribe()."""

    def __init__(self, name: str):
        self._name = name
        self._handlers: dict[str, list[EventHandler]] = {}

    @property
    def name(self) -> str:
        return self._name

    def bind(self, event_name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)

    def unbind_all(self) -> None:
        self._handlers.clear()

    def handlers_for(self, event_name: str) -> list[EventHandler]:
        return list(self._handlers.get(event_name, []))


class RealtimeBroker:
    """In-memory pub/sub broker."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Channel]] = {}

    def subscribe(self, channel: str) -> Channel:
        """Subscribe to a channel and return the handle."""
        handle = Channel(channel)
        self._subscriptions.setdefault(channel, []).append(handle)
        logger.debug("Subscribed to channel %s", channel)
        return handle

    def unsubscribe(self, handle: Channel) -> None:
        """Release a subscription handle."""
        handles = self._subscriptions.get(handle.name, [])
        if handle in handles:
            handles.remove(handle)
            logger.debug("Unsubscribed from channel %s", handle.name)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscriptions.get(channel, []))

    async def publish(self, channel: str, event_name: str, payload: dict[str, Any]) -> None:
        """Deliver payload to every handler bound to event_name on channel."""
        handlers = [
            handler
            for handle in list(self._subscriptions.get(channel, []))
            for handler in handle.handlers_for(event_name)
        ]

        if not handlers:
            return

        # Each handler gets its own copy of the payload
        results = await asyncio.gather(
            *[handler(dict(payload)) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in handler %s for %s/%s: %s", i, channel, event_name, result
                )
