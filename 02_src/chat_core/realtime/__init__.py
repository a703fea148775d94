"""Realtime module."""

from .broker import Channel, EventHandler, IChannel, IRealtimeBroker, RealtimeBroker
from .payload import BroadcastPayload

__all__ = [
    "BroadcastPayload",
    "Channel",
    "EventHandler",
    "IChannel",
    "IRealtimeBroker",
    "RealtimeBroker",
]
