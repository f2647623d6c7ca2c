"""Interval arithmetic over half-open [start, end) time ranges."""

from datetime import datetime, time, timedelta

from models.entities import TimeInterval
from services.errors import InvalidBookingError


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True iff the intervals share any instant. Touching endpoints do not overlap."""
    return a.start < b.end and a.end > b.start


def shift(interval: TimeInterval, minutes: int) -> TimeInterval:
    delta = timedelta(minutes=minutes)
    return TimeInterval(interval.start + delta, interval.end + delta)


def validate_interval(interval: TimeInterval) -> None:
    """Reject intervals that cannot be checked."""
    if (interval.start.tzinfo is None) != (interval.end.tzinfo is None):
        raise InvalidBookingError("Interval start and end must both be naive or both be timezone-aware")
    if interval.start >= interval.end:
        raise InvalidBookingError(
            f"Interval start {interval.start.isoformat()} must be before end {interval.end.isoformat()}"
        )


def to_local(moment: datetime, tz) -> datetime:
    """
    Wall-clock time in ``tz``.

    Naive datetimes are already treated as local time and returned unchanged.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(tz)


def align_to(moment: datetime, reference: datetime, tz) -> datetime:
    """Make ``moment`` comparable with ``reference`` (naive local or aware)."""
    if reference.tzinfo is None:
        if moment.tzinfo is None:
            return moment
        return moment.astimezone(tz).replace(tzinfo=None)
    if moment.tzinfo is None:
        return tz.localize(moment)
    return moment


def local_datetime(day, hour: int, like: datetime, tz) -> datetime:
    """``day`` at ``hour``:00, naive or localized to match ``like``."""
    naive = datetime.combine(day, time(hour, 0))
    if like.tzinfo is None:
        return naive
    return tz.localize(naive)
