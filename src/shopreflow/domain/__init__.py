"""Domain models and business rules for work order reflow."""

from shopreflow.domain.errors import (
    CycleDetectedError,
    DocumentError,
    ReflowError,
    ScheduleInvalidError,
    SchedulingImpossibleError,
    UnknownDependencyError,
    UnknownWorkCenterError,
)
from shopreflow.domain.models import (
    Change,
    ChangeField,
    ChangeReason,
    MaintenanceWindow,
    ManufacturingOrder,
    ReflowInput,
    ReflowResult,
    Shift,
    WorkCenter,
    WorkingSegment,
    WorkOrder,
)
from shopreflow.domain.policies import ReflowPolicy

__all__ = [
    # Models
    "Change",
    "ChangeField",
    "ChangeReason",
    "MaintenanceWindow",
    "ManufacturingOrder",
    "ReflowInput",
    "ReflowResult",
    "Shift",
    "WorkCenter",
    "WorkingSegment",
    "WorkOrder",
    # Errors
    "CycleDetectedError",
    "DocumentError",
    "ReflowError",
    "ScheduleInvalidError",
    "SchedulingImpossibleError",
    "UnknownDependencyError",
    "UnknownWorkCenterError",
    # Policies
    "ReflowPolicy",
]
