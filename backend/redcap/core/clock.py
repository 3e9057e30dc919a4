"""
Horodatage UTC.

En base, toutes les dates sont stockées avec leur fuseau (UTC).
Dans les records FIT, les timestamps sont en UTC sans tzinfo.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Date avec tzinfo ; une date naive est considérée comme déjà en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_naive_utc(value: datetime) -> datetime:
    """Ramène une date avec fuseau à l'UTC naif des timestamps FIT."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
