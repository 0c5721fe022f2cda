"""Policy definitions for reflow behaviour.

Policies are kept separate from the engine so the iteration bounds and
tolerances that are part of the reflow contract can be tuned and tested
independently.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReflowPolicy:
    """Configuration shared by the time walker, placer, and validator.

    Attributes:
        max_stabilize_iterations: Bound on the loop that finds the next
            working moment (skip to shift start, skip past maintenance).
        max_segment_iterations: Bound on the number of working segments a
            single time walk may consume.
        max_snap_iterations: Bound on the placer's search for an available
            start, including moves past fixed maintenance orders.
        end_tolerance_seconds: How far a stored end may drift from the
            re-derived end before the validator reports it.
        maintenance_without_shifts: If True, maintenance windows still block
            work on a work center with no shifts. If False, a center without
            shifts adds duration as plain wall-clock time.
    """

    max_stabilize_iterations: int = 1000
    max_segment_iterations: int = 5000
    max_snap_iterations: int = 500
    end_tolerance_seconds: float = 60.0
    maintenance_without_shifts: bool = True

    def __post_init__(self):
        for name in (
            "max_stabilize_iterations",
            "max_segment_iterations",
            "max_snap_iterations",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.end_tolerance_seconds < 0:
            raise ValueError("end_tolerance_seconds must be non-negative")


DEFAULT_POLICY = ReflowPolicy()
