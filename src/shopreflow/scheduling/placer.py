"""The reflow placement pass.

Walks movable work orders in dependency order and gives each one the
earliest start that respects its dependencies, its work center's previous
placements, shift hours, and maintenance. Ends are computed by the
TimeWalker. Maintenance work orders never move; they act as fixed obstacles
on their work center and as fixed dependencies for other orders.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Sequence

from shopreflow.domain.errors import (
    SchedulingImpossibleError,
    UnknownDependencyError,
    UnknownWorkCenterError,
)
from shopreflow.domain.models import (
    Change,
    ChangeField,
    ChangeReason,
    WorkCenter,
    WorkOrder,
    format_instant,
)
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.domain.time_walker import TimeWalker
from shopreflow.scheduling.dependency_graph import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class CenterTimeline:
    """Running placement state for one work center during one pass.

    Attributes:
        name: Work center name.
        intervals: Placed ``(start, end)`` intervals, in placement order.
        last_end: Latest end placed so far (running maximum).
    """

    name: str
    intervals: list[tuple[datetime, datetime]] = field(default_factory=list)
    last_end: Optional[datetime] = None

    def record(self, start: datetime, end: datetime) -> None:
        self.intervals.append((start, end))
        if self.last_end is None or end > self.last_end:
            self.last_end = end


@dataclass
class Placement:
    """How one work order was placed.

    Attributes:
        order_id: The placed order.
        start: Chosen start.
        end: Computed end.
        floor: Earliest start before aligning to working time.
        dependency_end: Latest end among the order's dependencies, if any.
        dependency_id: The dependency that ends last, if any.
        center_end: Latest end already placed on the work center, if any.
        obstacle_end: End of the last fixed maintenance order the start was
            pushed past, if any.
    """

    order_id: str
    start: datetime
    end: datetime
    floor: datetime
    dependency_end: Optional[datetime] = None
    dependency_id: Optional[str] = None
    center_end: Optional[datetime] = None
    obstacle_end: Optional[datetime] = None

    def start_reason(self) -> ChangeReason:
        """Dominant cause of the chosen start, by priority."""
        if self.dependency_end is not None and self.start == self.dependency_end:
            return ChangeReason.DEPENDENCY
        if self.center_end is not None and self.start == self.center_end:
            return ChangeReason.WORK_CENTER_CONFLICT
        if self.obstacle_end is not None and self.start == self.obstacle_end:
            return ChangeReason.WORK_CENTER_CONFLICT
        return ChangeReason.SHIFT_MAINTENANCE


@dataclass
class PlacementOutcome:
    """Result of one placement pass.

    Attributes:
        updated_orders: All orders in input order. Moved orders are new values.
        changes: One record per altered field.
        explanation_parts: One sentence per change.
        placements: Placement details per movable order id.
        processing_order: Order ids in the sequence they were considered.
    """

    updated_orders: list[WorkOrder] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)
    explanation_parts: list[str] = field(default_factory=list)
    placements: dict[str, Placement] = field(default_factory=dict)
    processing_order: list[str] = field(default_factory=list)


class Placer:
    """Greedy earliest-feasible placement of work orders.

    Example:
        >>> placer = Placer()
        >>> outcome = placer.place(work_orders, work_centers)
        >>> for change in outcome.changes:
        ...     print(change)
    """

    def __init__(
        self,
        policy: Optional[ReflowPolicy] = None,
        walker: Optional[TimeWalker] = None,
    ):
        self.policy = policy or ReflowPolicy()
        self.walker = walker or TimeWalker(self.policy)

    def place(
        self,
        work_orders: Sequence[WorkOrder],
        work_centers: Sequence[WorkCenter],
    ) -> PlacementOutcome:
        """Place every movable work order.

        Args:
            work_orders: All orders, maintenance orders included.
            work_centers: All work centers referenced by the orders.

        Returns:
            PlacementOutcome with updated orders and the change log.

        Raises:
            UnknownWorkCenterError: An order names a missing work center.
            UnknownDependencyError: An order depends on a missing order.
            CycleDetectedError: Dependencies form a cycle.
            SchedulingImpossibleError: An order could not be placed within
                the policy's iteration bounds.
        """
        centers = self._index_centers(work_orders, work_centers)
        orders_by_id = {order.id: order for order in work_orders}

        # Earlier stored (start, end) pairs are considered first among ready orders.
        graph = DependencyGraph(sorted(work_orders, key=lambda o: (o.start, o.end)))
        if graph.unresolved:
            order_id, missing = next(iter(graph.unresolved.items()))
            raise UnknownDependencyError(order_id, missing)
        processing_order = graph.topological_order()

        obstacles = self._fixed_obstacles(work_orders)
        timelines: dict[str, CenterTimeline] = {}
        outcome = PlacementOutcome(processing_order=processing_order)

        for order_id in processing_order:
            order = orders_by_id[order_id]
            if order.is_maintenance:
                continue

            center = centers[order.work_center_id]
            timeline = timelines.setdefault(center.name, CenterTimeline(center.name))
            placement = self._place_order(
                order,
                center,
                timeline,
                obstacles.get(center.name, []),
                orders_by_id,
                outcome.placements,
            )
            outcome.placements[order_id] = placement
            timeline.record(placement.start, placement.end)

            logger.debug(
                "Placed %s on %s: floor=%s start=%s end=%s",
                order_id,
                center.name,
                format_instant(placement.floor),
                format_instant(placement.start),
                format_instant(placement.end),
            )

            for change in self._changes_for(order, placement):
                outcome.changes.append(change)
                outcome.explanation_parts.append(self._sentence_for(change, placement))

        for order in work_orders:
            placement = outcome.placements.get(order.id)
            if placement is None or (
                placement.start == order.start and placement.end == order.end
            ):
                outcome.updated_orders.append(order)
            else:
                outcome.updated_orders.append(
                    replace(order, start=placement.start, end=placement.end)
                )

        return outcome

    def _index_centers(
        self,
        work_orders: Sequence[WorkOrder],
        work_centers: Sequence[WorkCenter],
    ) -> dict[str, WorkCenter]:
        """Resolve every order's work center name once, before the pass."""
        centers = {center.name: center for center in work_centers}
        for order in work_orders:
            if order.work_center_id not in centers:
                raise UnknownWorkCenterError(order.id, order.work_center_id)
        return centers

    def _fixed_obstacles(
        self, work_orders: Sequence[WorkOrder]
    ) -> dict[str, list[WorkOrder]]:
        """Maintenance orders per work center, sorted by start."""
        obstacles: dict[str, list[WorkOrder]] = {}
        for order in work_orders:
            if order.is_maintenance:
                obstacles.setdefault(order.work_center_id, []).append(order)
        for fixed in obstacles.values():
            fixed.sort(key=lambda o: o.start)
        return obstacles

    def _place_order(
        self,
        order: WorkOrder,
        center: WorkCenter,
        timeline: CenterTimeline,
        obstacles: list[WorkOrder],
        orders_by_id: dict[str, WorkOrder],
        placed: dict[str, Placement],
    ) -> Placement:
        """Compute the earliest feasible interval for one movable order."""
        dependency_end = None
        dependency_id = None
        for dep_id in order.depends_on:
            dep = orders_by_id[dep_id]
            # Rescheduled value if the dependency moved earlier in this pass.
            dep_end = placed[dep_id].end if dep_id in placed else dep.end
            if dependency_end is None or dep_end > dependency_end:
                dependency_end = dep_end
                dependency_id = dep_id

        center_end = timeline.last_end
        floor = max(
            t for t in (center_end, dependency_end, order.start) if t is not None
        )

        shifts = center.shifts
        ranges = center.maintenance_ranges()
        limit = self.policy.max_snap_iterations
        obstacle_end = None

        try:
            start = self.walker.next_working_moment(floor, shifts, ranges, limit=limit)
            end = self.walker.walk(start, order.duration_minutes, shifts, ranges)
            for _ in range(limit):
                blocking = _first_blocking(obstacles, start, end)
                if blocking is None:
                    break
                obstacle_end = blocking.end
                start = self.walker.next_working_moment(
                    blocking.end, shifts, ranges, limit=limit
                )
                end = self.walker.walk(start, order.duration_minutes, shifts, ranges)
            else:
                raise SchedulingImpossibleError(
                    f"still overlaps maintenance orders after {limit} moves",
                    limit=limit,
                    instant=start,
                )
        except SchedulingImpossibleError as exc:
            raise exc.for_order(order.id, center.name) from exc

        return Placement(
            order_id=order.id,
            start=start,
            end=end,
            floor=floor,
            dependency_end=dependency_end,
            dependency_id=dependency_id,
            center_end=center_end,
            obstacle_end=obstacle_end,
        )

    def _changes_for(self, order: WorkOrder, placement: Placement) -> list[Change]:
        """Change records for the fields that actually moved."""
        changes = []
        start_moved = placement.start != order.start

        if start_moved:
            reason = placement.start_reason()
            if reason == ChangeReason.DEPENDENCY:
                how = (
                    f"Earliest slot after dependency {placement.dependency_id} "
                    "finished; aligned to shift/maintenance."
                )
            elif reason == ChangeReason.WORK_CENTER_CONFLICT:
                how = (
                    f"Earliest slot after prior order on work center "
                    f"{order.work_center_id}; aligned to shift/maintenance."
                )
            else:
                how = "Aligned to next available shift start (or after maintenance)."
            changes.append(
                Change(
                    order_id=order.id,
                    field=ChangeField.START,
                    old_value=order.start,
                    new_value=placement.start,
                    reason=reason,
                    explanation=how,
                )
            )

        if placement.end != order.end:
            if start_moved:
                reason = ChangeReason.CASCADE
                how = (
                    f"Recalculated from new start: {order.duration_minutes} min "
                    "counted only in shift and outside maintenance."
                )
            else:
                reason = ChangeReason.SHIFT_MAINTENANCE
                how = (
                    f"Recalculated: {order.duration_minutes} min counted only in "
                    "shift and outside maintenance; work pauses at shift end or "
                    "during maintenance and resumes after."
                )
            changes.append(
                Change(
                    order_id=order.id,
                    field=ChangeField.END,
                    old_value=order.end,
                    new_value=placement.end,
                    reason=reason,
                    explanation=how,
                )
            )

        return changes

    def _sentence_for(self, change: Change, placement: Placement) -> str:
        """One explanation sentence for the result summary."""
        what = "start" if change.field == ChangeField.START else "end"
        if change.reason == ChangeReason.DEPENDENCY:
            why = f"dependency on {placement.dependency_id}"
        elif change.reason == ChangeReason.WORK_CENTER_CONFLICT:
            why = "after prior order on same work center"
        elif change.reason == ChangeReason.CASCADE:
            why = "recalculated from new start"
        else:
            why = "shift- and maintenance-aware: work paused at cutoff, resumed after"
        return (
            f"Order {change.order_id} {what} moved to "
            f"{format_instant(change.new_value)} ({why})."
        )


def _first_blocking(
    obstacles: list[WorkOrder], start: datetime, end: datetime
) -> Optional[WorkOrder]:
    """First fixed order that an interval ``[start, end)`` runs into."""
    for fixed in obstacles:
        if end == start:
            if fixed.start <= start < fixed.end:
                return fixed
        elif fixed.overlaps(start, end):
            return fixed
    return None
