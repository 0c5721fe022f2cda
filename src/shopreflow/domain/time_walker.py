"""Shift- and maintenance-aware time walking.

The TimeWalker answers one question: starting at a given instant, when have
N minutes of real working time elapsed? Working time is time that is inside
a shift and outside every maintenance range. Work pauses at the end of a
shift window or at the start of a maintenance range and resumes at the next
working moment.

Example: 120 minutes starting Monday 16:00 on a Mon-Fri 08:00-17:00 calendar
runs 16:00-17:00 on Monday, pauses, and runs 08:00-09:00 on Tuesday, so the
walk ends Tuesday 09:00.

This is the only implementation of that arithmetic. The placer uses it to
compute end times and the validator uses it to confirm them.
"""

from datetime import datetime, timedelta
from typing import Iterator, Optional, Sequence

from shopreflow.domain.errors import SchedulingImpossibleError
from shopreflow.domain.models import Shift, WorkingSegment, as_utc
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.domain.shift_calendar import (
    get_next_shift_start,
    get_shift_segment_end,
    is_within_shift,
)

MaintenanceRange = tuple[datetime, datetime]


def containing_range(
    instant: datetime, ranges: Sequence[MaintenanceRange]
) -> Optional[MaintenanceRange]:
    """First maintenance range ``[start, end)`` containing the instant."""
    for blocked in ranges:
        if blocked[0] <= instant < blocked[1]:
            return blocked
    return None


class TimeWalker:
    """Advances instants by working time.

    Example:
        >>> walker = TimeWalker()
        >>> end = walker.walk(monday_16h, 120, Shift.weekdays(8, 17), [])
        >>> end == tuesday_9h
        True
    """

    def __init__(self, policy: Optional[ReflowPolicy] = None):
        self.policy = policy or ReflowPolicy()

    def is_wall_clock(
        self, shifts: Sequence[Shift], ranges: Sequence[MaintenanceRange]
    ) -> bool:
        """True when durations are plain wall-clock additions.

        That is the case with no shifts and either no maintenance or a policy
        that ignores maintenance on centers without shifts.
        """
        if shifts:
            return False
        return not ranges or not self.policy.maintenance_without_shifts

    def is_working(
        self,
        instant: datetime,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> bool:
        """Check if work can progress at the instant."""
        if self.is_wall_clock(shifts, ranges):
            return True
        if shifts and not is_within_shift(instant, shifts):
            return False
        return containing_range(instant, ranges) is None

    def next_working_moment(
        self,
        instant: datetime,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
        limit: Optional[int] = None,
    ) -> datetime:
        """First working moment at or after the instant.

        Outside all shifts, jump to the next shift start. Inside a maintenance
        range, jump to its end. Repeat until neither applies. An instant that
        is already a working moment is returned unchanged.

        Args:
            instant: Where to start looking.
            shifts: Work center shifts.
            ranges: Maintenance ranges.
            limit: Iteration bound; defaults to the policy's
                ``max_stabilize_iterations``.

        Raises:
            SchedulingImpossibleError: If no working moment was reached
                within the bound.
        """
        limit = limit or self.policy.max_stabilize_iterations
        current = as_utc(instant)
        if self.is_wall_clock(shifts, ranges):
            return current

        for _ in range(limit):
            if shifts and not is_within_shift(current, shifts):
                current = get_next_shift_start(current, shifts)
                continue
            blocked = containing_range(current, ranges)
            if blocked is not None:
                current = blocked[1]
                continue
            return current

        raise SchedulingImpossibleError(
            f"No working time found after {as_utc(instant).isoformat()} "
            f"within {limit} iterations",
            limit=limit,
            instant=as_utc(instant),
        )

    def segment_end(
        self,
        instant: datetime,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> Optional[datetime]:
        """End of the uninterrupted working segment containing the instant.

        The earlier of the enclosing shift's end and the first maintenance
        range starting strictly after the instant. None means unbounded
        (no shifts and no later maintenance).
        """
        bound = get_shift_segment_end(instant, shifts) if shifts else None
        for range_start, _ in ranges:
            if range_start > instant and (bound is None or range_start < bound):
                bound = range_start
        return bound

    def _iter_segments(
        self,
        start: datetime,
        duration_minutes: int,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> Iterator[WorkingSegment]:
        remaining = timedelta(minutes=duration_minutes)
        current = as_utc(start)
        if remaining <= timedelta(0):
            return

        if self.is_wall_clock(shifts, ranges):
            yield WorkingSegment(current, current + remaining)
            return

        current = self.next_working_moment(current, shifts, ranges)
        limit = self.policy.max_segment_iterations
        for _ in range(limit):
            seg_end = self.segment_end(current, shifts, ranges)
            if seg_end is None or current + remaining <= seg_end:
                yield WorkingSegment(current, current + remaining)
                return
            if seg_end <= current:
                current = self.next_working_moment(seg_end, shifts, ranges)
                continue
            yield WorkingSegment(current, seg_end)
            remaining -= seg_end - current
            current = self.next_working_moment(seg_end, shifts, ranges)

        raise SchedulingImpossibleError(
            f"Walking {duration_minutes} min from {as_utc(start).isoformat()} "
            f"did not finish within {limit} segments",
            limit=limit,
            instant=as_utc(start),
        )

    def walk(
        self,
        start: datetime,
        duration_minutes: int,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> datetime:
        """Instant at which ``duration_minutes`` of working time have elapsed.

        A zero duration ends at the first working moment at or after start.

        Raises:
            SchedulingImpossibleError: If an iteration bound is exceeded.
        """
        if duration_minutes <= 0:
            return self.next_working_moment(start, shifts, ranges)
        end = None
        for segment in self._iter_segments(start, duration_minutes, shifts, ranges):
            end = segment.end
        return end

    def working_segments(
        self,
        start: datetime,
        duration_minutes: int,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> list[WorkingSegment]:
        """Every contiguous working interval consumed by a walk.

        The last segment ends exactly where ``walk`` ends.
        """
        return list(self._iter_segments(start, duration_minutes, shifts, ranges))

    def working_minutes_between(
        self,
        start: datetime,
        end: datetime,
        shifts: Sequence[Shift],
        ranges: Sequence[MaintenanceRange],
    ) -> float:
        """Minutes of working time inside ``[start, end)``."""
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            return 0.0
        if self.is_wall_clock(shifts, ranges):
            return (end - start).total_seconds() / 60

        total = timedelta(0)
        current = start
        for _ in range(self.policy.max_segment_iterations):
            current = self.next_working_moment(current, shifts, ranges)
            if current >= end:
                break
            seg_end = self.segment_end(current, shifts, ranges)
            stop = end if seg_end is None else min(seg_end, end)
            total += stop - current
            current = stop
            if current >= end:
                break
        else:
            raise SchedulingImpossibleError(
                f"Counting working time from {start.isoformat()} to "
                f"{end.isoformat()} exceeded {self.policy.max_segment_iterations} segments",
                limit=self.policy.max_segment_iterations,
                instant=start,
            )
        return total.total_seconds() / 60
