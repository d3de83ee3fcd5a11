"""Timestamp helpers.

All timestamps are stored as naive UTC datetimes (SQLite drops tzinfo on the
way back, so keeping everything naive avoids aware/naive comparisons).
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional

TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def not_before(now: datetime, *previous: Optional[datetime]) -> datetime:
    """Return ``now`` unless an earlier stamp is already at or past it.

    Keeps successive lifecycle stamps ordered even when the wall clock steps
    backwards or two stamps land on the same microsecond.
    """
    latest = max((p for p in previous if p is not None), default=None)
    if latest is not None and now <= latest:
        return latest + TICK
    return now


def isoformat_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat() + 'Z'


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 string (``Z`` suffix allowed) into naive UTC."""
    dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    return to_naive_utc(dt)


__all__ = ['utcnow', 'to_naive_utc', 'not_before', 'isoformat_z', 'parse_timestamp', 'TICK']
