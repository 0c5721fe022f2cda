"""Validation module for verifying schedule correctness."""

from shopreflow.validation.validator import (
    ScheduleValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
    validate_schedule,
)

__all__ = [
    "ScheduleValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
    "validate_schedule",
]
