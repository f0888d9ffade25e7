"""Labor law compliance module for time and attendance."""

from .errors import InvalidInputError, InvalidCoordinatesError
from .types import (
    Severity,
    RuleId,
    BreakType,
    Coordinates,
    TimeEntry,
    BreakEntry,
    ComplianceRules,
    ValidationContext,
    ValidationResult,
    ComplianceReport,
)
from .time_windows import TimeWindowCalculator, RestGap
from .geofence import GeofenceChecker, GeofenceCheck, format_distance, is_valid_coordinates
from .engine import ComplianceValidator
from .roster import (
    RosterValidator,
    RosterValidationResult,
    ShiftData,
    ValidationIssue,
    WeeklyHoursSummary,
)

__all__ = [
    "InvalidInputError",
    "InvalidCoordinatesError",
    "Severity",
    "RuleId",
    "BreakType",
    "Coordinates",
    "TimeEntry",
    "BreakEntry",
    "ComplianceRules",
    "ValidationContext",
    "ValidationResult",
    "ComplianceReport",
    "TimeWindowCalculator",
    "RestGap",
    "GeofenceChecker",
    "GeofenceCheck",
    "format_distance",
    "is_valid_coordinates",
    "ComplianceValidator",
    "RosterValidator",
    "RosterValidationResult",
    "ShiftData",
    "ValidationIssue",
    "WeeklyHoursSummary",
]
