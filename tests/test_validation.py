"""Tests for schedule validation."""

from datetime import datetime, timezone

import pytest

from shopreflow.domain.models import MaintenanceWindow, Shift, WorkCenter, WorkOrder
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.validation.validator import (
    ScheduleValidator,
    ValidationErrorType,
    validate_schedule,
)

UTC = timezone.utc


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """January 2024; the 15th is a Monday."""
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


class TestScheduleValidator:
    """Tests for ScheduleValidator."""

    @pytest.fixture
    def validator(self):
        """Create a validator with the default policy."""
        return ScheduleValidator()

    @pytest.fixture
    def center(self):
        """Weekday line with a maintenance window on Tuesday morning."""
        return WorkCenter(
            name="WC-1",
            shifts=Shift.weekdays(8, 17),
            maintenance_windows=[MaintenanceWindow(at(16, 10), at(16, 12))],
        )

    @pytest.fixture
    def valid_orders(self):
        """A valid two-order schedule that crosses a night."""
        return [
            WorkOrder(
                id="A",
                work_center_id="WC-1",
                start=at(15, 15),
                end=at(16, 9),
                duration_minutes=180,
            ),
            WorkOrder(
                id="B",
                work_center_id="WC-1",
                start=at(16, 9),
                end=at(16, 13),
                duration_minutes=120,
                depends_on=("A",),
            ),
        ]

    def test_valid_schedule(self, validator, center, valid_orders):
        """A schedule that obeys every rule should pass."""
        result = validator.validate(valid_orders, [center])
        assert result.is_valid
        assert result.errors == []

    def test_work_center_conflict(self, validator, center, valid_orders):
        overlapping = WorkOrder(
            id="C",
            work_center_id="WC-1",
            start=at(16, 12),
            end=at(16, 14),
            duration_minutes=120,
        )
        result = validator.validate(valid_orders + [overlapping], [center])
        conflicts = result.errors_of_type(ValidationErrorType.WORK_CENTER_CONFLICT)
        assert len(conflicts) == 1
        assert conflicts[0].details == {"earlier": "B", "later": "C"}

    def test_touching_orders_do_not_conflict(self, validator, center, valid_orders):
        following = WorkOrder(
            id="C",
            work_center_id="WC-1",
            start=at(16, 13),
            end=at(16, 14),
            duration_minutes=60,
        )
        assert validator.validate(valid_orders + [following], [center]).is_valid

    def test_same_times_on_different_centers(self, validator, center, valid_orders):
        other = WorkCenter(name="WC-2", shifts=Shift.weekdays(8, 17))
        twin = WorkOrder(
            id="A2",
            work_center_id="WC-2",
            start=at(15, 15),
            end=at(16, 9),
            duration_minutes=180,
        )
        assert validator.validate(valid_orders + [twin], [center, other]).is_valid

    def test_dependency_violation(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 8),
                      end=at(15, 10), duration_minutes=120),
            WorkOrder(id="B", work_center_id="WC-2", start=at(15, 9),
                      end=at(15, 10), duration_minutes=60, depends_on=("A",)),
        ]
        other = WorkCenter(name="WC-2", shifts=Shift.weekdays(8, 17))
        result = validator.validate(orders, [center, other])
        violations = result.errors_of_type(ValidationErrorType.DEPENDENCY_VIOLATION)
        assert len(violations) == 1
        assert violations[0].order_id == "B"

    def test_unknown_dependency(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 8),
                      end=at(15, 9), duration_minutes=60, depends_on=("GHOST",)),
        ]
        result = validator.validate(orders, [center])
        assert [e.error_type for e in result.errors] == [
            ValidationErrorType.UNKNOWN_DEPENDENCY
        ]

    def test_unknown_work_center(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="Nowhere", start=at(15, 8),
                      end=at(15, 9), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        assert result.errors[0].error_type == ValidationErrorType.UNKNOWN_WORK_CENTER

    def test_start_outside_shift(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 7),
                      end=at(15, 9), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        assert result.errors_of_type(ValidationErrorType.OUTSIDE_SHIFT)

    def test_start_inside_maintenance(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(16, 10, 30),
                      end=at(16, 13), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        assert result.errors_of_type(ValidationErrorType.MAINTENANCE_OVERLAP)
        # The re-derived end is 13:00, so the end itself is consistent.
        assert not result.errors_of_type(ValidationErrorType.DURATION_MISMATCH)

    def test_end_ignoring_shift_pause(self, validator, center):
        """An end computed as start + duration is rejected across the night."""
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 16),
                      end=at(15, 18), duration_minutes=120),
        ]
        result = validator.validate(orders, [center])
        mismatches = result.errors_of_type(ValidationErrorType.DURATION_MISMATCH)
        assert len(mismatches) == 1
        assert "2024-01-16T09:00:00Z" in mismatches[0].message

    def test_end_within_tolerance(self, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 8),
                      end=datetime(2024, 1, 15, 9, 0, 45, tzinfo=UTC), duration_minutes=60),
        ]
        assert ScheduleValidator().validate(orders, [center]).is_valid
        strict = ScheduleValidator(ReflowPolicy(end_tolerance_seconds=0))
        assert not strict.validate(orders, [center]).is_valid

    def test_maintenance_orders_skip_calendar_checks(self, validator, center):
        orders = [
            WorkOrder(id="PM", work_center_id="WC-1", start=at(13, 6),
                      end=at(13, 18), duration_minutes=720, is_maintenance=True),
        ]
        assert validator.validate(orders, [center]).is_valid

    def test_maintenance_orders_still_conflict(self, validator, center):
        orders = [
            WorkOrder(id="PM", work_center_id="WC-1", start=at(15, 8),
                      end=at(15, 10), duration_minutes=120, is_maintenance=True),
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 9),
                      end=at(15, 10), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        assert result.errors_of_type(ValidationErrorType.WORK_CENTER_CONFLICT)

    def test_unschedulable_order_is_reported(self):
        center = WorkCenter(
            name="WC-1",
            shifts=Shift.weekdays(8, 17),
            maintenance_windows=[
                MaintenanceWindow(at(15, 8), at(15, 17)),
                MaintenanceWindow(at(16, 8), at(16, 17)),
            ],
        )
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 8),
                      end=at(17, 9), duration_minutes=60),
        ]
        validator = ScheduleValidator(ReflowPolicy(max_stabilize_iterations=2))
        result = validator.validate(orders, [center])
        assert result.errors_of_type(ValidationErrorType.UNSCHEDULABLE)

    def test_collects_every_error(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 7),
                      end=at(15, 7), duration_minutes=60, depends_on=("GHOST",)),
            WorkOrder(id="B", work_center_id="Nowhere", start=at(15, 8),
                      end=at(15, 9), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        types = {e.error_type for e in result.errors}
        assert {
            ValidationErrorType.UNKNOWN_DEPENDENCY,
            ValidationErrorType.OUTSIDE_SHIFT,
            ValidationErrorType.DURATION_MISMATCH,
            ValidationErrorType.UNKNOWN_WORK_CENTER,
        } <= types

    def test_error_string(self, validator, center):
        orders = [
            WorkOrder(id="A", work_center_id="WC-1", start=at(15, 7),
                      end=at(15, 9), duration_minutes=60),
        ]
        result = validator.validate(orders, [center])
        assert result.messages[0].startswith("[outside_shift] Order A:")

    def test_validate_schedule_function(self, center, valid_orders):
        assert validate_schedule(valid_orders, [center]).is_valid
