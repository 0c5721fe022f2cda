"""Reflow exceptions.

Every error raised by the reflow core derives from ReflowError. All of them
are fatal to the enclosing reflow call; no partial result is returned.
"""

from datetime import datetime
from typing import Optional


class ReflowError(Exception):
    """Base class for all reflow errors."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert error to a dictionary for JSON output."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class CycleDetectedError(ReflowError):
    """Raised when work order dependencies form a cycle."""

    def __init__(self, order_ids: list[str]) -> None:
        self.order_ids = list(order_ids)
        super().__init__(
            "Circular dependency detected involving work order(s): "
            + ", ".join(self.order_ids),
            {"order_ids": self.order_ids},
        )


class SchedulingImpossibleError(ReflowError):
    """Raised when a time walk or snap exceeds its iteration bound.

    This happens for degenerate calendars, e.g. a work center whose
    maintenance windows cover every shift.
    """

    def __init__(
        self,
        message: str,
        order_id: Optional[str] = None,
        work_center: Optional[str] = None,
        limit: Optional[int] = None,
        instant: Optional[datetime] = None,
    ) -> None:
        self.order_id = order_id
        self.work_center = work_center
        self.limit = limit
        self.instant = instant
        details = {
            "order_id": order_id,
            "work_center": work_center,
            "limit": limit,
            "instant": instant.isoformat() if instant else None,
        }
        super().__init__(message, details)

    def for_order(self, order_id: str, work_center: str) -> "SchedulingImpossibleError":
        """Copy of this error naming the order and work center being placed."""
        return SchedulingImpossibleError(
            f"Cannot place work order {order_id} on work center {work_center}: "
            f"{self.message}",
            order_id=order_id,
            work_center=work_center,
            limit=self.limit,
            instant=self.instant,
        )


class ScheduleInvalidError(ReflowError):
    """Raised when a produced schedule fails validation.

    Carries the validator's full error list, never just the first error.
    """

    def __init__(self, errors: list) -> None:
        self.errors = list(errors)
        self.messages = [str(e) for e in self.errors]
        super().__init__(
            "Reflow produced invalid schedule: " + "; ".join(self.messages),
            {"errors": self.messages},
        )


class UnknownWorkCenterError(ReflowError):
    """Raised when a work order references a work center that does not exist."""

    def __init__(self, order_id: str, work_center: str) -> None:
        self.order_id = order_id
        self.work_center = work_center
        super().__init__(
            f"Work order {order_id} references unknown work center {work_center}",
            {"order_id": order_id, "work_center": work_center},
        )


class UnknownDependencyError(ReflowError):
    """Raised when a work order depends on an id that matches no order."""

    def __init__(self, order_id: str, missing: list[str]) -> None:
        self.order_id = order_id
        self.missing = list(missing)
        super().__init__(
            f"Work order {order_id} depends on unknown work order(s): "
            + ", ".join(self.missing),
            {"order_id": order_id, "missing": self.missing},
        )


class DocumentError(ReflowError):
    """Raised when an input document is malformed."""
