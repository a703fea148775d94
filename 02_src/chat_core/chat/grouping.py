"""Date grouping and the render model derived from a message timeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Iterable

from ..models import Message
from .names import sender_label

TODAY_LABEL = "Today"


@dataclass
class RenderRow:
    """One message as displayed."""

    message: Message
    outgoing: bool  # sent by the viewer
    tight: bool  # same sender as the previous row in the group
    time_label: str
    sender_label: str | None = None


@dataclass
class DateGroup:
    """Messages sharing a date label, in timeline order."""

    label: str
    rows: list[RenderRow] = field(default_factory=list)


def _now(now: datetime | None, tz: tzinfo | None) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        # Naive "now" is wall-clock time in the system zone
        now = now.astimezone()
    return now.astimezone(tz)


def to_local(ts: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert to the viewer's zone.

    With tz None the system zone applies, including its daylight-saving
    rules for the date of ts.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz)


def date_label(created_at: datetime, now: datetime | None = None, tz: tzinfo | None = None) -> str:
    """'Today', 'October 3' (this year) or 'October 3, 2024'."""
    current = _now(now, tz)
    day = to_local(created_at, tz)

    if day.date() == current.date():
        return TODAY_LABEL
    if day.year == current.year:
        return f"{day:%B} {day.day}"
    return f"{day:%B} {day.day}, {day.year}"


def group_by_date(
    messages: Iterable[Message],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> dict[str, list[Message]]:
    """Group messages by date label, in order of first appearance."""
    current = _now(now, tz)
    groups: dict[str, list[Message]] = {}
    for message in messages:
        label = date_label(message.created_at, current, tz)
        groups.setdefault(label, []).append(message)
    return groups


def format_time(ts: datetime, tz: tzinfo | None = None) -> str:
    """HH:MM in the viewer's zone."""
    return f"{to_local(ts, tz):%H:%M}"


def format_display_timestamp(ts: datetime, tz: tzinfo | None = None) -> str:
    """Human-readable timestamp carried in broadcast payloads."""
    local = to_local(ts, tz)
    return f"{local:%b} {local.day}, {local.year}, {local:%I:%M %p}"


def build_render_model(
    messages: Iterable[Message],
    viewer_id: str | None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
    show_sender_names: bool = True,
) -> list[DateGroup]:
    """Date groups with per-row spacing, alignment and sender labels."""
    current = _now(now, tz)
    result: list[DateGroup] = []

    for label, group in group_by_date(messages, current, tz).items():
        date_group = DateGroup(label=label)
        previous: Message | None = None
        for message in group:
            outgoing = viewer_id is not None and message.sender_id == viewer_id
            date_group.rows.append(
                RenderRow(
                    message=message,
                    outgoing=outgoing,
                    tight=previous is not None and previous.sender_id == message.sender_id,
                    time_label=format_time(message.created_at, tz),
                    sender_label=(
                        sender_label(message) if show_sender_names and not outgoing else None
                    ),
                )
            )
            previous = message
        result.append(date_group)

    return result
