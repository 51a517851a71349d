from __future__ import annotations

from datetime import date, datetime, timedelta

from zeladoria.core.errors import InvalidDate


def coerce_date(value: object) -> date:
    """Truncate ``value`` to a calendar day.

    Accepts :class:`date`, :class:`datetime` and ISO-8601 strings (date only
    or full timestamps, including a trailing ``Z``). Anything else raises
    :class:`InvalidDate`.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDate(value)

    raw = value.strip()
    if not raw:
        raise InvalidDate(value)
    if raw.endswith(("Z", "z")):
        raw = f"{raw[:-1]}+00:00"
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        return datetime.fromisoformat(raw).date()
    except ValueError as exc:
        raise InvalidDate(value) from exc


def optional_date(value: object) -> date | None:
    if value is None or value == "":
        return None
    return coerce_date(value)


def add_days(start: date, days: int) -> date:
    # calendar days; weekends and holidays are not skipped
    return start + timedelta(days=days)


def days_between(earlier: date, later: date) -> int:
    return (later - earlier).days
