"""
Display helpers for ticket lists
"""
from datetime import datetime, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

_DEFAULT_COLOR = "bg-gray-100 text-gray-800 border-gray-200"

STATUS_COLORS = {
    "Open": "bg-blue-100 text-blue-800 border-blue-200",
    "In Progress": "bg-amber-100 text-amber-800 border-amber-200",
    "Resolved": "bg-green-100 text-green-800 border-green-200",
    "Closed": "bg-gray-100 text-gray-800 border-gray-200",
}

PRIORITY_COLORS = {
    "Urgent": "bg-red-100 text-red-800 border-red-200 animate-pulse",
    "High": "bg-red-100 text-red-800 border-red-200",
    "Medium": "bg-amber-100 text-amber-800 border-amber-200",
    "Low": "bg-green-100 text-green-800 border-green-200",
}


def _key(value) -> str:
    return getattr(value, "value", value) or ""


def get_status_color(status) -> str:
    return STATUS_COLORS.get(_key(status), _DEFAULT_COLOR)


def get_priority_color(priority) -> str:
    return PRIORITY_COLORS.get(_key(priority), _DEFAULT_COLOR)


def to_datetime(value: Union[datetime, str]) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC"""
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_relative_time(value: Union[datetime, str], now: Optional[datetime] = None) -> str:
    """
    Compact age of a timestamp ("5m ago", "3h ago", "2w ago")

    Args:
        value: Timestamp (datetime or ISO string)
        now: Reference time, defaults to the current UTC time
    """
    now = to_datetime(now or datetime.now(timezone.utc))
    minutes = int((now - to_datetime(value)).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"

    days = hours // 24
    if days < 7:
        return f"{days}d ago"

    weeks = days // 7
    if weeks < 4:
        return f"{weeks}w ago"

    return f"{days // 30}mo ago"
