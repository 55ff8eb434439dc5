"""Clock helpers. All business dates are evaluated in UTC."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return today's date in UTC."""
    return utc_now().date()
