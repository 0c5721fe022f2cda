"""Domain models for the reflow system.

This module contains the core data structures used throughout the reflow
engine: shifts, maintenance windows, work centers, work orders, and the
records produced by a reflow run.

All instants are timezone-aware datetimes in UTC. Naive datetimes handed to
the models are interpreted as UTC.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

UTC = timezone.utc


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class ChangeField(Enum):
    """Work order field altered by a reflow."""

    START = "startDate"
    END = "endDate"


class ChangeReason(Enum):
    """Dominant cause of a change, in classification priority order."""

    DEPENDENCY = "dependency"
    WORK_CENTER_CONFLICT = "work center conflict"
    SHIFT_MAINTENANCE = "shift or maintenance"
    CASCADE = "cascade from new start"  # End moved because the start moved


@dataclass(frozen=True)
class Shift:
    """A recurring weekly working window.

    Attributes:
        day_of_week: Day of the week, 0=Sunday through 6=Saturday.
        start_hour: First hour of the window (inclusive).
        end_hour: Hour the window closes (exclusive). 24 means midnight.
    """

    day_of_week: int
    start_hour: int
    end_hour: int

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError(
                f"Invalid day_of_week: {self.day_of_week}. Must be 0-6 (Sunday=0)"
            )
        if not 0 <= self.start_hour <= 23:
            raise ValueError(f"Invalid start_hour: {self.start_hour}. Must be 0-23")
        if not 0 <= self.end_hour <= 24:
            raise ValueError(f"Invalid end_hour: {self.end_hour}. Must be 0-24")

    @property
    def hours(self) -> int:
        """Length of the window in hours (0 for a degenerate shift)."""
        return max(0, self.end_hour - self.start_hour)

    @classmethod
    def weekdays(cls, start_hour: int, end_hour: int) -> list["Shift"]:
        """Create the same window for Monday through Friday."""
        return [cls(day, start_hour, end_hour) for day in range(1, 6)]

    def __repr__(self) -> str:
        return f"Shift(day={self.day_of_week}, {self.start_hour:02d}:00-{self.end_hour:02d}:00)"


@dataclass(frozen=True)
class MaintenanceWindow:
    """An absolute blocked interval ``[start, end)`` on one work center.

    Attributes:
        start: When the window begins.
        end: When the window ends (exclusive).
        reason: Optional free-text reason.
    """

    start: datetime
    end: datetime
    reason: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.end < self.start:
            raise ValueError("Maintenance window end must not be before its start")

    def as_range(self) -> tuple[datetime, datetime]:
        return (self.start, self.end)


@dataclass
class WorkCenter:
    """A machine or line that runs one work order at a time.

    Attributes:
        name: Identity key; work orders reference the center by name.
        shifts: Weekly shift windows. An empty list means always available.
        maintenance_windows: Absolute blocked intervals.
    """

    name: str
    shifts: list[Shift] = field(default_factory=list)
    maintenance_windows: list[MaintenanceWindow] = field(default_factory=list)

    def maintenance_ranges(self) -> list[tuple[datetime, datetime]]:
        """Maintenance windows as ``(start, end)`` ranges."""
        return [window.as_range() for window in self.maintenance_windows]


@dataclass(frozen=True)
class WorkOrder:
    """A unit of work placed on exactly one work center.

    Attributes:
        id: Unique work order number.
        work_center_id: Name of the work center the order runs on.
        start: Scheduled start.
        end: Scheduled end.
        duration_minutes: Working minutes the order needs.
        is_maintenance: If True, the order is immovable.
        depends_on: Ids of orders that must finish before this one starts.
        manufacturing_order_id: Parent manufacturing order, if any.
    """

    id: str
    work_center_id: str
    start: datetime
    end: datetime
    duration_minutes: int
    is_maintenance: bool = False
    depends_on: tuple[str, ...] = ()
    manufacturing_order_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        if isinstance(self.duration_minutes, bool) or not isinstance(
            self.duration_minutes, int
        ):
            raise ValueError(
                f"duration_minutes must be an integer, got {self.duration_minutes!r}"
            )
        if self.duration_minutes < 0:
            raise ValueError(
                f"duration_minutes must be non-negative, got {self.duration_minutes}"
            )

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check if this order's interval overlaps ``[start, end)``."""
        return self.start < end and start < self.end


@dataclass(frozen=True)
class ManufacturingOrder:
    """A customer-facing order that groups work orders.

    Attributes:
        id: Manufacturing order number.
        item_id: Item being produced.
        quantity: Quantity ordered.
        due_date: When the finished item is due.
    """

    id: str
    item_id: str = ""
    quantity: int = 0
    due_date: Optional[datetime] = None

    def __post_init__(self):
        if self.due_date is not None:
            object.__setattr__(self, "due_date", as_utc(self.due_date))


@dataclass(frozen=True)
class WorkingSegment:
    """A contiguous interval inside a shift and outside maintenance."""

    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    def __repr__(self) -> str:
        return (
            f"WorkingSegment({self.start.strftime('%a %Y-%m-%d %H:%M')}"
            f"-{self.end.strftime('%H:%M')})"
        )


@dataclass
class Change:
    """One altered field of one work order.

    Attributes:
        order_id: The work order that moved.
        field: Which field changed.
        old_value: Value before the reflow.
        new_value: Value after the reflow.
        reason: Dominant cause of the change.
        explanation: Short human-readable account of how the value was derived.
    """

    order_id: str
    field: ChangeField
    old_value: datetime
    new_value: datetime
    reason: ChangeReason
    explanation: str = ""

    @property
    def delta(self) -> timedelta:
        return self.new_value - self.old_value

    def __str__(self) -> str:
        return (
            f"{self.order_id} {self.field.value}: {format_instant(self.old_value)} -> "
            f"{format_instant(self.new_value)} [{self.reason.value}]"
        )


@dataclass
class ReflowInput:
    """Everything one reflow invocation consumes."""

    work_orders: list[WorkOrder] = field(default_factory=list)
    work_centers: list[WorkCenter] = field(default_factory=list)
    manufacturing_orders: list[ManufacturingOrder] = field(default_factory=list)


@dataclass
class ReflowResult:
    """Full output of one reflow run.

    Attributes:
        updated_orders: All work orders in input order; altered ones are new values.
        changes: One record per altered field.
        explanation: Human-readable summary of what moved and why.
    """

    updated_orders: list[WorkOrder] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)
    explanation: str = ""

    @property
    def moved_order_ids(self) -> list[str]:
        """Ids of orders with at least one change, in change order."""
        seen: list[str] = []
        for change in self.changes:
            if change.order_id not in seen:
                seen.append(change.order_id)
        return seen

    def get_order(self, order_id: str) -> Optional[WorkOrder]:
        for order in self.updated_orders:
            if order.id == order_id:
                return order
        return None

    def changes_for(self, order_id: str) -> list[Change]:
        return [c for c in self.changes if c.order_id == order_id]


def late_manufacturing_orders(
    manufacturing_orders: list[ManufacturingOrder],
    work_orders: list[WorkOrder],
) -> dict[str, timedelta]:
    """Manufacturing orders whose last work order ends after the due date.

    Returns:
        Dict mapping manufacturing order id to how late it finishes.
    """
    last_end: dict[str, datetime] = {}
    for order in work_orders:
        mo_id = order.manufacturing_order_id
        if mo_id is None:
            continue
        if mo_id not in last_end or order.end > last_end[mo_id]:
            last_end[mo_id] = order.end

    late = {}
    for mo in manufacturing_orders:
        if mo.due_date is None or mo.id not in last_end:
            continue
        if last_end[mo.id] > mo.due_date:
            late[mo.id] = last_end[mo.id] - mo.due_date
    return late


def start_of_day(instant: datetime) -> datetime:
    """Midnight of the instant's calendar day, keeping its timezone."""
    return instant.replace(hour=0, minute=0, second=0, microsecond=0)


def format_instant(instant: datetime) -> str:
    """ISO-8601 UTC rendering with a ``Z`` suffix, e.g. 2024-01-15T08:00:00Z."""
    instant = as_utc(instant)
    timespec = "seconds" if instant.microsecond == 0 else "milliseconds"
    return instant.isoformat(timespec=timespec).replace("+00:00", "Z")
