"""Reflow engine: dependency ordering, placement, and orchestration."""

from shopreflow.domain.shift_calendar import (
    get_next_shift_start,
    get_shift_segment_end,
    is_within_shift,
)
from shopreflow.domain.time_walker import TimeWalker
from shopreflow.scheduling.dependency_graph import DependencyGraph, topological_order
from shopreflow.scheduling.placer import CenterTimeline, Placement, PlacementOutcome, Placer
from shopreflow.scheduling.scheduler import ReflowScheduler, reflow

__all__ = [
    # Core scheduler
    "ReflowScheduler",
    "reflow",
    # Placement
    "CenterTimeline",
    "Placement",
    "PlacementOutcome",
    "Placer",
    # Ordering
    "DependencyGraph",
    "topological_order",
    # Calendar arithmetic
    "TimeWalker",
    "get_next_shift_start",
    "get_shift_segment_end",
    "is_within_shift",
]
