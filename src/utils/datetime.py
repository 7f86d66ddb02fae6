# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the academics service.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and every Python
datetime handled by the service is timezone-aware.

Usage:
    from src.utils.datetime import utc_now

    created_at = Column(DateTime(timezone=True), default=utc_now)
    computed_at: datetime = Field(default_factory=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Naive datetimes are assumed to be UTC; aware ones are converted.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


def compact_timestamp(dt: datetime) -> str:
    """Format a datetime for use inside a file name.

    Microseconds are kept so two artifacts generated in the same second
    get distinct names.

    Args:
        dt: Datetime to format.

    Returns:
        String like ``20250114T093012123456``.
    """
    return ensure_utc(dt).strftime("%Y%m%dT%H%M%S%f")


def format_display_date(dt: datetime) -> str:
    """Format a datetime the way printed bulletins show it (dd/mm/YYYY)."""
    return ensure_utc(dt).strftime("%d/%m/%Y")
