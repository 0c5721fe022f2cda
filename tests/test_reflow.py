"""Tests for placement and the reflow entry point."""

from datetime import datetime, timezone

import pytest

from shopreflow.domain.errors import (
    CycleDetectedError,
    ScheduleInvalidError,
    SchedulingImpossibleError,
    UnknownDependencyError,
    UnknownWorkCenterError,
)
from shopreflow.domain.models import (
    ChangeField,
    ChangeReason,
    MaintenanceWindow,
    ReflowInput,
    Shift,
    WorkCenter,
    WorkOrder,
)
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.domain.time_walker import TimeWalker
from shopreflow.scheduling.placer import Placer
from shopreflow.scheduling.scheduler import (
    NO_CHANGES_EXPLANATION,
    ReflowScheduler,
    reflow,
)
from shopreflow.validation.validator import (
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    validate_schedule,
)

UTC = timezone.utc


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """January 2024; the 15th is a Monday."""
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


def order(order_id, start, end, minutes, center="WC-1", depends_on=(), **kwargs):
    return WorkOrder(
        id=order_id,
        work_center_id=center,
        start=start,
        end=end,
        duration_minutes=minutes,
        depends_on=tuple(depends_on),
        **kwargs,
    )


@pytest.fixture
def line():
    """Monday-Friday 08:00-17:00."""
    return WorkCenter(name="WC-1", shifts=Shift.weekdays(8, 17))


@pytest.fixture
def chain_orders():
    """X runs first on the line; A overlaps it and drags B and C along."""
    return [
        order("X", at(15, 8), at(15, 10), 120),
        order("A", at(15, 9), at(15, 10), 60),
        order("B", at(15, 10), at(15, 11), 60, depends_on=["A"]),
        order("C", at(15, 11), at(15, 12), 60, depends_on=["B"]),
    ]


class TestDependencyChain:
    """A -> B -> C on one line behind an earlier order X."""

    def test_new_times(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        assert result.get_order("X").start == at(15, 8)
        assert (result.get_order("A").start, result.get_order("A").end) == (at(15, 10), at(15, 11))
        assert (result.get_order("B").start, result.get_order("B").end) == (at(15, 11), at(15, 12))
        assert (result.get_order("C").start, result.get_order("C").end) == (at(15, 12), at(15, 13))

    def test_change_reasons(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        starts = {
            c.order_id: c.reason for c in result.changes if c.field == ChangeField.START
        }
        assert starts == {
            "A": ChangeReason.WORK_CENTER_CONFLICT,
            "B": ChangeReason.DEPENDENCY,
            "C": ChangeReason.DEPENDENCY,
        }
        ends = [c for c in result.changes if c.field == ChangeField.END]
        assert all(c.reason == ChangeReason.CASCADE for c in ends)
        assert len(result.changes) == 6

    def test_change_values(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        start_change = result.changes_for("B")[0]
        assert start_change.old_value == at(15, 10)
        assert start_change.new_value == at(15, 11)
        assert "dependency A" in start_change.explanation

    def test_explanation_mentions_each_move(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        assert "Order A start moved to 2024-01-15T10:00:00Z" in result.explanation
        assert "dependency on B" in result.explanation

    def test_updated_orders_keep_input_sequence(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        assert [o.id for o in result.updated_orders] == ["X", "A", "B", "C"]

    def test_unchanged_order_is_same_object(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        assert result.updated_orders[0] is chain_orders[0]
        assert result.moved_order_ids == ["A", "B", "C"]

    def test_inputs_are_not_mutated(self, line, chain_orders):
        before = [(o.id, o.start, o.end) for o in chain_orders]
        reflow(chain_orders, [line])
        assert [(o.id, o.start, o.end) for o in chain_orders] == before

    def test_result_is_valid(self, line, chain_orders):
        result = reflow(chain_orders, [line])
        assert validate_schedule(result.updated_orders, [line]).is_valid


class TestShiftsAndMaintenance:
    """Placement respects shifts, maintenance windows, and maintenance orders."""

    def test_start_outside_shift_snaps_forward(self, line):
        result = reflow([order("WO", at(15, 6), at(15, 7), 60)], [line])
        moved = result.get_order("WO")
        assert (moved.start, moved.end) == (at(15, 8), at(15, 9))
        assert result.changes[0].reason == ChangeReason.SHIFT_MAINTENANCE
        assert result.changes[1].reason == ChangeReason.CASCADE

    def test_stale_end_is_recomputed_in_place(self, line):
        """A start that is already fine keeps its value; only the end moves."""
        result = reflow([order("WO", at(15, 16), at(15, 18), 120)], [line])
        assert result.get_order("WO").end == at(16, 9)
        assert len(result.changes) == 1
        assert result.changes[0].field == ChangeField.END
        assert result.changes[0].reason == ChangeReason.SHIFT_MAINTENANCE

    def test_work_spans_maintenance_window(self):
        center = WorkCenter(
            name="WC-1",
            shifts=Shift.weekdays(8, 17),
            maintenance_windows=[MaintenanceWindow(at(15, 10), at(15, 12))],
        )
        result = reflow([order("WO", at(15, 9), at(15, 11), 120)], [center])
        assert result.get_order("WO").end == at(15, 13)

    def test_routes_around_maintenance_order(self, line):
        orders = [
            order("PM", at(15, 10), at(15, 12), 120, is_maintenance=True),
            order("WO", at(15, 9), at(15, 11), 120),
        ]
        result = reflow(orders, [line])
        moved = result.get_order("WO")
        assert (moved.start, moved.end) == (at(15, 12), at(15, 14))
        start_change = result.changes_for("WO")[0]
        assert start_change.reason == ChangeReason.WORK_CENTER_CONFLICT

    def test_routes_around_zero_length_maintenance_order(self, line):
        """A fixed order of zero length still splits the line at its instant."""
        orders = [
            order("PM", at(15, 10), at(15, 10), 0, is_maintenance=True),
            order("WO", at(15, 9), at(15, 10), 120),
        ]
        result = reflow(orders, [line])
        moved = result.get_order("WO")
        assert (moved.start, moved.end) == (at(15, 10), at(15, 12))
        assert result.get_order("PM") is orders[0]

    def test_maintenance_order_never_moves(self, line):
        pm = order("PM", at(13, 10), at(13, 12), 120, is_maintenance=True)
        result = reflow([pm], [line])
        assert result.updated_orders == [pm]
        assert result.changes == []

    def test_maintenance_order_as_dependency(self, line):
        oven = WorkCenter(name="Oven", shifts=Shift.weekdays(6, 22))
        orders = [
            order("PM", at(15, 10), at(15, 12), 120, center="Oven", is_maintenance=True),
            order("WO", at(15, 9), at(15, 10), 60, depends_on=["PM"]),
        ]
        result = reflow(orders, [line, oven])
        assert result.get_order("WO").start == at(15, 12)
        assert result.changes_for("WO")[0].reason == ChangeReason.DEPENDENCY

    def test_zero_duration_order(self, line):
        result = reflow([order("MILESTONE", at(15, 18), at(15, 18), 0)], [line])
        moved = result.get_order("MILESTONE")
        assert moved.start == moved.end == at(16, 8)


class TestIdempotence:
    """Reflowing a valid schedule changes nothing."""

    def test_valid_schedule_is_untouched(self, line):
        orders = [
            order("A", at(15, 8), at(15, 10), 120),
            order("B", at(15, 10), at(15, 12), 120, depends_on=["A"]),
            order("C", at(15, 16), at(16, 9), 120),
        ]
        result = reflow(orders, [line])
        assert result.changes == []
        assert result.explanation == NO_CHANGES_EXPLANATION
        assert all(a is b for a, b in zip(result.updated_orders, orders))

    def test_zero_duration_order_sharing_a_start(self, line):
        """A zero-length order at the same instant as a longer one stays put."""
        orders = [
            order("W", at(15, 10), at(15, 11), 60),
            order("Z", at(15, 10), at(15, 10), 0),
        ]
        assert validate_schedule(orders, [line]).is_valid
        result = reflow(orders, [line])
        assert result.changes == []

    def test_time_order_wins_over_input_order(self, line):
        """Orders listed out of time order are processed by stored start."""
        orders = [
            order("X", at(15, 10), at(15, 11), 60),
            order("Y", at(15, 8), at(15, 10), 120),
        ]
        assert validate_schedule(orders, [line]).is_valid
        outcome = Placer().place(orders, [line])
        assert outcome.processing_order == ["Y", "X"]
        assert outcome.changes == []
        assert [o.id for o in outcome.updated_orders] == ["X", "Y"]

    def test_second_reflow_is_a_no_op(self, line, chain_orders):
        first = reflow(chain_orders, [line])
        second = reflow(first.updated_orders, [line])
        assert second.changes == []


class TestWorkingTimeConservation:
    """Every placed order consumes exactly its duration in working time."""

    def test_durations_are_conserved(self):
        center = WorkCenter(
            name="WC-1",
            shifts=Shift.weekdays(8, 17),
            maintenance_windows=[MaintenanceWindow(at(16, 9), at(16, 11))],
        )
        orders = [
            order("A", at(15, 14), at(15, 15), 300),
            order("B", at(15, 15), at(15, 16), 45, depends_on=["A"]),
            order("C", at(15, 9), at(15, 10), 500),
        ]
        result = reflow(orders, [center])
        walker = TimeWalker()
        for updated in result.updated_orders:
            worked = walker.working_minutes_between(
                updated.start,
                updated.end,
                center.shifts,
                center.maintenance_ranges(),
            )
            assert worked == updated.duration_minutes


class TestErrors:
    """Fatal input problems."""

    def test_cycle(self, line):
        orders = [
            order("A", at(15, 8), at(15, 9), 60, depends_on=["B"]),
            order("B", at(15, 9), at(15, 10), 60, depends_on=["A"]),
        ]
        with pytest.raises(CycleDetectedError) as exc_info:
            reflow(orders, [line])
        assert set(exc_info.value.order_ids) == {"A", "B"}

    def test_unknown_work_center(self, line):
        with pytest.raises(UnknownWorkCenterError) as exc_info:
            reflow([order("A", at(15, 8), at(15, 9), 60, center="Nowhere")], [line])
        assert exc_info.value.work_center == "Nowhere"

    def test_unknown_dependency(self, line):
        with pytest.raises(UnknownDependencyError) as exc_info:
            reflow([order("A", at(15, 8), at(15, 9), 60, depends_on=["GHOST"])], [line])
        assert exc_info.value.missing == ["GHOST"]

    def test_unplaceable_order(self):
        center = WorkCenter(
            name="WC-1",
            shifts=[Shift(day_of_week=1, start_hour=8, end_hour=9)],
            maintenance_windows=[
                MaintenanceWindow(at(15, 8), at(15, 9)),
                MaintenanceWindow(at(22, 8), at(22, 9)),
            ],
        )
        policy = ReflowPolicy(max_snap_iterations=3)
        with pytest.raises(SchedulingImpossibleError) as exc_info:
            reflow([order("A", at(15, 8), at(15, 9), 60)], [center], policy=policy)
        assert exc_info.value.order_id == "A"
        assert exc_info.value.work_center == "WC-1"

    def test_invalid_result_is_refused(self, line, chain_orders):
        scheduler = ReflowScheduler()
        failure = ValidationResult(is_valid=True)
        failure.add_error(
            ValidationError(
                error_type=ValidationErrorType.WORK_CENTER_CONFLICT,
                message="forced",
                order_id="A",
            )
        )
        scheduler.validator.validate = lambda orders, centers: failure
        with pytest.raises(ScheduleInvalidError) as exc_info:
            scheduler.reflow(chain_orders, [line])
        assert exc_info.value.messages == ["[work_center_conflict] Order A: forced"]


class TestReflowScheduler:
    """Tests for the ReflowScheduler wrapper."""

    def test_accepts_reflow_input(self, line, chain_orders):
        result = ReflowScheduler().reflow(
            ReflowInput(work_orders=chain_orders, work_centers=[line])
        )
        assert result.moved_order_ids == ["A", "B", "C"]

    def test_stats(self, line, chain_orders):
        _, stats = ReflowScheduler().reflow_with_stats(chain_orders, [line])
        assert stats["total_orders"] == 4
        assert stats["moved_orders"] == 3
        assert stats["total_changes"] == 6
        assert stats["start_delay_minutes_by_center"] == {"WC-1": 180.0}

    def test_placer_reports_processing_order(self, line, chain_orders):
        outcome = Placer().place(chain_orders, [line])
        assert outcome.processing_order == ["X", "A", "B", "C"]
        assert outcome.placements["A"].center_end == at(15, 10)
