"""Main reflow interface.

This module provides the high-level ReflowScheduler class that orchestrates
dependency ordering, placement, and validation, plus the ``reflow``
convenience function.
"""

import logging
from typing import Optional, Sequence, Union

from shopreflow.domain.errors import ScheduleInvalidError
from shopreflow.domain.models import (
    ChangeField,
    ReflowInput,
    ReflowResult,
    WorkCenter,
    WorkOrder,
)
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.domain.time_walker import TimeWalker
from shopreflow.scheduling.placer import Placer
from shopreflow.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)

NO_CHANGES_EXPLANATION = "No changes required; schedule already satisfies constraints."


class ReflowScheduler:
    """High-level scheduler for reflowing work orders.

    The placer and the validator share one TimeWalker so the end times
    they compute can never diverge.

    Example:
        >>> scheduler = ReflowScheduler()
        >>> result = scheduler.reflow(work_orders, work_centers)
        >>> print(result.explanation)
    """

    def __init__(self, policy: Optional[ReflowPolicy] = None):
        """Initialize scheduler with a policy.

        Args:
            policy: Iteration bounds, tolerance, and maintenance handling.
        """
        self.policy = policy or ReflowPolicy()
        self.walker = TimeWalker(self.policy)
        self.placer = Placer(self.policy, self.walker)
        self.validator = ScheduleValidator(self.policy, self.walker)

    def reflow(
        self,
        work_orders: Union[ReflowInput, Sequence[WorkOrder]],
        work_centers: Optional[Sequence[WorkCenter]] = None,
    ) -> ReflowResult:
        """Reschedule all movable work orders and validate the result.

        Args:
            work_orders: Orders to reflow, or a complete ReflowInput.
            work_centers: Work centers; omitted when a ReflowInput is given.

        Returns:
            ReflowResult with updated orders, changes, and explanation.

        Raises:
            CycleDetectedError: Dependencies form a cycle.
            SchedulingImpossibleError: An order could not be placed.
            UnknownWorkCenterError: An order names a missing work center.
            UnknownDependencyError: An order depends on a missing order.
            ScheduleInvalidError: The produced schedule failed validation.
        """
        if isinstance(work_orders, ReflowInput):
            work_centers = work_orders.work_centers
            work_orders = work_orders.work_orders
        work_orders = list(work_orders)
        work_centers = list(work_centers or [])

        outcome = self.placer.place(work_orders, work_centers)

        validation = self.validator.validate(outcome.updated_orders, work_centers)
        if not validation.is_valid:
            logger.error(
                "Reflow produced an invalid schedule (%d errors)",
                len(validation.errors),
            )
            raise ScheduleInvalidError(validation.errors)

        explanation = (
            " ".join(outcome.explanation_parts)
            if outcome.explanation_parts
            else NO_CHANGES_EXPLANATION
        )
        logger.info(
            "Reflowed %d work orders: %d change(s)",
            len(work_orders),
            len(outcome.changes),
        )

        return ReflowResult(
            updated_orders=outcome.updated_orders,
            changes=outcome.changes,
            explanation=explanation,
        )

    def reflow_with_stats(
        self,
        work_orders: Union[ReflowInput, Sequence[WorkOrder]],
        work_centers: Optional[Sequence[WorkCenter]] = None,
    ) -> tuple[ReflowResult, dict]:
        """Reflow and return statistics.

        Returns:
            Tuple of (result, stats_dict).
        """
        result = self.reflow(work_orders, work_centers)
        stats = self._calculate_stats(result)
        return result, stats

    def _calculate_stats(self, result: ReflowResult) -> dict:
        """Calculate reflow statistics."""
        delay_by_center: dict[str, float] = {}
        orders_by_id = {order.id: order for order in result.updated_orders}

        for change in result.changes:
            if change.field != ChangeField.START:
                continue
            center = orders_by_id[change.order_id].work_center_id
            delay_by_center[center] = (
                delay_by_center.get(center, 0.0) + change.delta.total_seconds() / 60
            )

        maintenance_orders = sum(1 for o in result.updated_orders if o.is_maintenance)

        return {
            "total_orders": len(result.updated_orders),
            "maintenance_orders": maintenance_orders,
            "moved_orders": len(result.moved_order_ids),
            "total_changes": len(result.changes),
            "start_delay_minutes_by_center": delay_by_center,
            "total_start_delay_minutes": sum(delay_by_center.values()),
        }


def reflow(
    work_orders: Union[ReflowInput, Sequence[WorkOrder]],
    work_centers: Optional[Sequence[WorkCenter]] = None,
    policy: Optional[ReflowPolicy] = None,
) -> ReflowResult:
    """Reflow work orders with a ReflowScheduler. See ReflowScheduler.reflow."""
    return ReflowScheduler(policy).reflow(work_orders, work_centers)
