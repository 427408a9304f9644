"""Clock and ISO-8601 helpers.

Timestamps are persisted as UTC ISO strings with millisecond precision and a
``Z`` suffix, so lexical ordering in SQLite matches chronological ordering.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC. None on failure."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_epoch_ms(value: object) -> str | None:
    """Convert an epoch-milliseconds number to an ISO string."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return to_iso(datetime.fromtimestamp(value / 1000, tz=timezone.utc))


def resolve_zone(name: str) -> ZoneInfo | timezone:
    """Look up an IANA zone, falling back to UTC for unknown names."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc
