"""UTC timestamp utilities. ⏰

Every date in TickVault is a calendar day in UTC. A day's window is the
half-open interval [date 00:00, date+1 00:00).
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

ONE_DAY = timedelta(days=1)


def get_utc_timestamp() -> datetime:
    """Get current UTC timestamp. 🕐"""
    return datetime.now(timezone.utc)


def utc_midnight(day: date) -> datetime:
    """Return 00:00 UTC on ``day`` as an aware datetime."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC window covering ``day``.

    Example:
        >>> start, end = day_window(date(2024, 1, 1))
        >>> start.isoformat(), end.isoformat()
        ('2024-01-01T00:00:00+00:00', '2024-01-02T00:00:00+00:00')
    """
    start = utc_midnight(day)
    return start, start + ONE_DAY


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield calendar days from ``start`` to ``end`` inclusive, ascending."""
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def count_days(start: date, end: date) -> int:
    """Number of days ``iter_days(start, end)`` yields."""
    return max(0, (end - start).days + 1)


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to milliseconds since the epoch."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert milliseconds since the epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_iso_ms(moment: datetime) -> str:
    """Format as ISO-8601 with milliseconds and a ``Z`` suffix.

    Example:
        >>> format_iso_ms(utc_midnight(date(2024, 1, 1)))
        '2024-01-01T00:00:00.000Z'
    """
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso_date(value: str) -> date:
    """Parse an ISO-8601 date or timestamp string into a UTC calendar day.

    Accepts ``2024-01-01``, ``2024-01-01T00:00:00.000Z`` and offset forms.

    Raises:
        ValueError: If ``value`` is not ISO-8601.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if "T" not in text and " " not in text:
        return date.fromisoformat(text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()
