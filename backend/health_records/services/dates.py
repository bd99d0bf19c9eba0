"""Date parsing shared by analytics, pattern detection and trends."""

from __future__ import annotations

import datetime

MONTH_LABEL_FORMAT = "%b %Y"


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def parse_visit_date(value: str) -> datetime.date | None:
    """Parse an ISO-8601 date or timestamp. Returns None when unparseable."""
    try:
        return datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        pass
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.UTC)
    return parsed.date()


def visit_datetime(value: str) -> datetime.datetime | None:
    """Visit date as midnight UTC, for comparison against rolling-window cutoffs."""
    day = parse_visit_date(value)
    if day is None:
        return None
    return datetime.datetime.combine(day, datetime.time.min, tzinfo=datetime.UTC)


def month_label(day: datetime.date) -> str:
    """e.g. ``Jan 2024``."""
    return day.strftime(MONTH_LABEL_FORMAT)


def parse_month_label(label: str) -> datetime.date | None:
    try:
        return datetime.datetime.strptime(label, MONTH_LABEL_FORMAT).date()
    except ValueError:
        return None
