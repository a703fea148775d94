"""Chat module."""

from .grouping import (
    DateGroup,
    RenderRow,
    build_render_model,
    date_label,
    format_display_timestamp,
    format_time,
    group_by_date,
)
from .ingestion import RealtimeIngestion
from .names import ConversationNameResolver, sender_label
from .receipts import ReadReceiptTracker
from .session import ChatSession
from .store import MessageStore

__all__ = [
    "ChatSession",
    "ConversationNameResolver",
    "DateGroup",
    "MessageStore",
    "ReadReceiptTracker",
    "RealtimeIngestion",
    "RenderRow",
    "build_render_model",
    "date_label",
    "format_display_timestamp",
    "format_time",
    "group_by_date",
    "sender_label",
]
