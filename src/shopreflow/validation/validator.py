"""Validation module for verifying schedule correctness.

This module provides an independent check of the four reflow constraints:
no overlap per work center, dependencies finish first, work starts inside
shifts with ends that match the time walk, and work never starts inside a
maintenance window. It can audit any schedule, not only reflow output, and
never raises; every problem is collected into the result.

Work may span a maintenance window (it pauses and resumes after), so
maintenance is enforced through two checks: the start must not lie inside a
window, and the stored end must match the maintenance-aware time walk.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from shopreflow.domain.errors import SchedulingImpossibleError
from shopreflow.domain.models import WorkCenter, WorkOrder, format_instant
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.domain.shift_calendar import is_within_shift
from shopreflow.domain.time_walker import TimeWalker, containing_range

logger = logging.getLogger(__name__)


class ValidationErrorType(Enum):
    """Types of validation errors."""

    WORK_CENTER_CONFLICT = "work_center_conflict"
    DEPENDENCY_VIOLATION = "dependency_violation"
    UNKNOWN_DEPENDENCY = "unknown_dependency"
    UNKNOWN_WORK_CENTER = "unknown_work_center"
    OUTSIDE_SHIFT = "outside_shift"
    DURATION_MISMATCH = "duration_mismatch"
    MAINTENANCE_OVERLAP = "maintenance_overlap"
    UNSCHEDULABLE = "unschedulable"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    order_id: Optional[str] = None
    work_center: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.order_id:
            parts.append(f"Order {self.order_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a schedule."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    @property
    def messages(self) -> list[str]:
        return [str(error) for error in self.errors]

    def errors_of_type(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [error for error in self.errors if error.error_type == error_type]


class ScheduleValidator:
    """Validates schedules against all reflow constraints.

    Uses the same TimeWalker arithmetic as the placer, so a schedule the
    placer produced always re-derives to the same ends.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate(work_orders, work_centers)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(
        self,
        policy: Optional[ReflowPolicy] = None,
        walker: Optional[TimeWalker] = None,
    ):
        self.policy = policy or ReflowPolicy()
        self.walker = walker or TimeWalker(self.policy)

    def validate(
        self,
        work_orders: Sequence[WorkOrder],
        work_centers: Sequence[WorkCenter],
    ) -> ValidationResult:
        """Validate a complete schedule.

        All checks run regardless of earlier failures.

        Args:
            work_orders: Orders to check, maintenance orders included.
            work_centers: Work centers the orders reference.

        Returns:
            ValidationResult with is_valid flag and any errors.
        """
        result = ValidationResult(is_valid=True)
        centers = {center.name: center for center in work_centers}

        self._validate_work_center_conflicts(work_orders, result)
        self._validate_dependencies(work_orders, result)

        for order in work_orders:
            center = centers.get(order.work_center_id)
            if center is None:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.UNKNOWN_WORK_CENTER,
                        message=f"Unknown work center {order.work_center_id}",
                        order_id=order.id,
                        work_center=order.work_center_id,
                    )
                )
                continue
            if order.is_maintenance:
                continue
            self._validate_calendar(order, center, result)

        if not result.is_valid:
            logger.debug("Validation found %d error(s)", len(result.errors))
        return result

    def _validate_work_center_conflicts(
        self,
        work_orders: Sequence[WorkOrder],
        result: ValidationResult,
    ) -> None:
        """Check that adjacent orders on each work center do not overlap."""
        by_center: dict[str, list[WorkOrder]] = {}
        for order in work_orders:
            by_center.setdefault(order.work_center_id, []).append(order)

        for center_name, orders in by_center.items():
            ordered = sorted(orders, key=lambda o: (o.start, o.end))
            for earlier, later in zip(ordered, ordered[1:]):
                if earlier.end > later.start:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.WORK_CENTER_CONFLICT,
                            message=(
                                f"Work center conflict on {center_name}: order "
                                f"{earlier.id} ends {format_instant(earlier.end)} but "
                                f"order {later.id} starts {format_instant(later.start)}"
                            ),
                            order_id=later.id,
                            work_center=center_name,
                            details={"earlier": earlier.id, "later": later.id},
                        )
                    )

    def _validate_dependencies(
        self,
        work_orders: Sequence[WorkOrder],
        result: ValidationResult,
    ) -> None:
        """Check that every order starts after all its dependencies end."""
        by_id = {order.id: order for order in work_orders}

        for order in work_orders:
            latest_end: Optional[datetime] = None
            latest_id = None
            for dep_id in order.depends_on:
                dep = by_id.get(dep_id)
                if dep is None:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.UNKNOWN_DEPENDENCY,
                            message=f"Depends on unknown work order {dep_id}",
                            order_id=order.id,
                            details={"dependency": dep_id},
                        )
                    )
                    continue
                if latest_end is None or dep.end > latest_end:
                    latest_end = dep.end
                    latest_id = dep.id

            if latest_end is not None and order.start < latest_end:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.DEPENDENCY_VIOLATION,
                        message=(
                            f"Starts {format_instant(order.start)} before dependency "
                            f"{latest_id} ends {format_instant(latest_end)}"
                        ),
                        order_id=order.id,
                        work_center=order.work_center_id,
                        details={"dependency": latest_id},
                    )
                )

    def _validate_calendar(
        self,
        order: WorkOrder,
        center: WorkCenter,
        result: ValidationResult,
    ) -> None:
        """Check shift start, maintenance start, and re-derived end."""
        shifts = center.shifts
        ranges = center.maintenance_ranges()

        if shifts and not is_within_shift(order.start, shifts):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.OUTSIDE_SHIFT,
                    message=(
                        f"Start {format_instant(order.start)} is not inside any "
                        f"shift for work center {center.name}"
                    ),
                    order_id=order.id,
                    work_center=center.name,
                )
            )

        blocked = containing_range(order.start, ranges)
        if blocked is not None:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.MAINTENANCE_OVERLAP,
                    message=(
                        f"Start {format_instant(order.start)} falls inside maintenance "
                        f"window [{format_instant(blocked[0])}, "
                        f"{format_instant(blocked[1])}) on {center.name}"
                    ),
                    order_id=order.id,
                    work_center=center.name,
                )
            )

        try:
            expected_end = self.walker.walk(
                order.start, order.duration_minutes, shifts, ranges
            )
        except SchedulingImpossibleError as exc:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.UNSCHEDULABLE,
                    message=f"End cannot be derived: {exc.message}",
                    order_id=order.id,
                    work_center=center.name,
                )
            )
            return

        drift = abs((order.end - expected_end).total_seconds())
        if drift > self.policy.end_tolerance_seconds:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.DURATION_MISMATCH,
                    message=(
                        f"End {format_instant(order.end)} does not match "
                        f"{order.duration_minutes} working minutes from start "
                        f"(expected {format_instant(expected_end)})"
                    ),
                    order_id=order.id,
                    work_center=center.name,
                    details={"drift_seconds": drift},
                )
            )


def validate_schedule(
    work_orders: Sequence[WorkOrder],
    work_centers: Sequence[WorkCenter],
    policy: Optional[ReflowPolicy] = None,
) -> ValidationResult:
    """Validate a schedule with a default ScheduleValidator. Never raises."""
    return ScheduleValidator(policy).validate(work_orders, work_centers)
