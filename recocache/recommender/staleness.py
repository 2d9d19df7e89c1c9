"""Staleness policy for cached recommendations.

Classifies a user's cache state into one of three explicit states so the
orchestrator can branch exhaustively instead of checking for missing
timestamps ad hoc.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from recocache.recommender.models import UserAnalyticsRecord


class Staleness(str, Enum):
    """Cache state of a user's recommendations."""

    ABSENT = "absent"
    FRESH = "fresh"
    STALE = "stale"


def as_utc(value: datetime) -> datetime:
    # Naive timestamps are stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def classify(
    record: Optional[UserAnalyticsRecord],
    now: datetime,
    window: timedelta,
) -> Staleness:
    """Classify the cache state of an analytics record.

    Args:
        record: The user's analytics record, or None if the user has none.
        now: Current time.
        window: Maximum age of a cached recommendation list.

    Returns:
        ABSENT if there is no record, FRESH if the record was trained less
        than ``window`` ago, STALE otherwise. A record that was never
        trained is STALE, not ABSENT.

    Example:
        >>> classify(None, now, timedelta(hours=3))
        <Staleness.ABSENT: 'absent'>
    """
    if record is None:
        return Staleness.ABSENT

    if record.last_trained is None:
        return Staleness.STALE

    age = as_utc(now) - as_utc(record.last_trained)
    if age < window:
        return Staleness.FRESH
    return Staleness.STALE
