"""Clock, identifier and calendar helpers"""

import uuid
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    """Default clock: current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Default identifier factory"""
    return str(uuid.uuid4())


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from start to end (negative if end precedes start)"""
    return (end - start) / timedelta(hours=1)


def is_same_calendar_day(moment: datetime, now: datetime, tz: tzinfo = timezone.utc) -> bool:
    """True when both instants fall on the same date in the given calendar timezone"""
    return moment.astimezone(tz).date() == now.astimezone(tz).date()


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from start to end, floored"""
    return (end - start) // timedelta(days=1)
