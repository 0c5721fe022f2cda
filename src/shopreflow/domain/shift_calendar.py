"""Shift calendar predicates.

Pure functions over a weekly shift table. Shifts are whole-hour, half-open
``[start_hour, end_hour)`` windows keyed by day of week with Sunday=0.
Every function treats an empty shift list as "always available".
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from shopreflow.domain.models import Shift, as_utc, start_of_day

# Today plus a full week, so every weekly shift has a chance to appear.
SEARCH_DAYS = 8


def day_of_week(instant: datetime) -> int:
    """Day of week with Sunday=0 through Saturday=6."""
    return as_utc(instant).isoweekday() % 7


def shift_contains(shift: Shift, instant: datetime) -> bool:
    """Check if a single shift contains the instant.

    Only the hour is compared; shift boundaries are always whole hours.
    """
    instant = as_utc(instant)
    if shift.day_of_week != day_of_week(instant):
        return False
    return shift.start_hour <= instant.hour < shift.end_hour


def is_within_shift(instant: datetime, shifts: Iterable[Shift]) -> bool:
    """True if any shift contains the instant."""
    return any(shift_contains(shift, instant) for shift in shifts)


def find_shift(instant: datetime, shifts: Iterable[Shift]) -> Optional[Shift]:
    """First shift containing the instant, or None."""
    for shift in shifts:
        if shift_contains(shift, instant):
            return shift
    return None


def get_shift_segment_end(
    instant: datetime, shifts: Iterable[Shift]
) -> Optional[datetime]:
    """End of the shift window containing the instant.

    Returns ``end_hour:00`` on the instant's calendar day, the point where
    work must pause unless a later window resumes it. Returns None when no
    shift contains the instant.
    """
    shift = find_shift(instant, shifts)
    if shift is None:
        return None
    return start_of_day(as_utc(instant)) + timedelta(hours=shift.end_hour)


def get_next_shift_start(instant: datetime, shifts: Iterable[Shift]) -> datetime:
    """Earliest shift start at or after the instant.

    Searches the start day and the following seven days. Empty shifts
    (``end_hour <= start_hour``) never start. Returns the instant unchanged
    when there are no shifts or no shift start was found.
    """
    shifts = list(shifts)
    if not shifts:
        return instant

    instant = as_utc(instant)
    midnight = start_of_day(instant)
    best: Optional[datetime] = None

    for offset in range(SEARCH_DAYS):
        day = midnight + timedelta(days=offset)
        dow = day_of_week(day)
        for shift in shifts:
            if shift.day_of_week != dow or shift.hours == 0:
                continue
            candidate = day + timedelta(hours=shift.start_hour)
            if candidate >= instant and (best is None or candidate < best):
                best = candidate

    return best if best is not None else instant
