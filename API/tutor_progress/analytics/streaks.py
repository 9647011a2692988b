"""Calendar-day keys and activity streaks in a fixed civil timezone."""
from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone, tzinfo

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_instant(value) -> datetime | date | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if _BARE_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def day_key(value, tz: tzinfo) -> str | None:
    """
    Return the ``YYYY-MM-DD`` day on which ``value`` falls in ``tz``.

    Naive datetimes are read as UTC. A plain date (or a bare ``YYYY-MM-DD``
    string) is already a civil day and is returned unchanged. Unparseable
    input gives ``None``.
    """
    parsed = _parse_instant(value)
    if parsed is None:
        return None
    if not isinstance(parsed, datetime):
        return parsed.isoformat()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(tz).date().isoformat()


def compute_streak(values: Iterable, tz: tzinfo) -> int:
    """Consecutive active days ending at the latest active day (not necessarily today)."""
    keys = {key for key in (day_key(value, tz) for value in values) if key}
    if not keys:
        return 0
    days = [date.fromisoformat(key) for key in sorted(keys)]
    streak = 1
    for idx in range(len(days) - 1, 0, -1):
        if days[idx] - days[idx - 1] == timedelta(days=1):
            streak += 1
        else:
            break
    return streak
