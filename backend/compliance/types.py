"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from utils.time import is_aware, to_utc

from .config import COMPLIANCE_TIMEZONE, GEOFENCE_RADIUS_METERS
from .errors import InvalidInputError


class Severity(str, Enum):
    """Severity tiers, ordered low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class RuleId(str, Enum):
    """The twelve compliance rules, in the order they are reported."""
    DAILY_LIMIT = "daily_limit"
    WEEKLY_LIMIT = "weekly_limit"
    REST_PERIOD = "rest_period"
    MANDATORY_BREAK = "mandatory_break"
    CONTINUOUS_WORK = "continuous_work"
    WEEKLY_REST = "weekly_rest"
    NIGHT_WORK = "night_work"
    OVERTIME = "overtime"
    ABSOLUTE_WEEKLY_MAX = "absolute_weekly_max"
    ADOLESCENT = "adolescent_restrictions"
    PREGNANT_WORKER = "pregnant_worker"
    GEOFENCE = "geofence"


class BreakType(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


class Coordinates(NamedTuple):
    lat: float
    lng: float


def _require_aware(name: str, value: Optional[datetime]) -> None:
    if value is not None and not is_aware(value):
        raise InvalidInputError(f"{name} must carry an explicit UTC offset, got naive {value.isoformat()}")


@dataclass(frozen=True)
class TimeEntry:
    """A clock-in/clock-out pair. clock_out=None means the shift is still open."""
    id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_minutes: int = 0  # Legacy aggregate
    clock_in_location: Optional[Coordinates] = None
    clock_out_location: Optional[Coordinates] = None
    user_id: Optional[str] = None

    def __post_init__(self):
        _require_aware("clock_in", self.clock_in)
        _require_aware("clock_out", self.clock_out)
        if self.clock_out is not None and to_utc(self.clock_out) <= to_utc(self.clock_in):
            raise InvalidInputError(f"Time entry {self.id}: clock_out must be after clock_in")
        if self.break_minutes < 0:
            raise InvalidInputError(f"Time entry {self.id}: break_minutes cannot be negative")

    @property
    def is_open(self) -> bool:
        return self.clock_out is None


@dataclass(frozen=True)
class BreakEntry:
    """A break taken during a time entry. break_end=None means the break is still running."""
    id: str
    time_entry_id: str
    break_start: datetime
    break_end: Optional[datetime] = None
    break_type: BreakType = BreakType.UNPAID

    def __post_init__(self):
        _require_aware("break_start", self.break_start)
        _require_aware("break_end", self.break_end)
        if self.break_end is not None and to_utc(self.break_end) <= to_utc(self.break_start):
            raise InvalidInputError(f"Break {self.id}: break_end must be after break_start")
        if self.break_type not in (BreakType.PAID, BreakType.UNPAID):
            raise InvalidInputError(f"Break {self.id}: unknown break type {self.break_type!r}")

    @property
    def is_open(self) -> bool:
        return self.break_end is None


@dataclass(frozen=True)
class ComplianceRules:
    """Thresholds for Spanish labor law (Estatuto de los Trabajadores)."""
    timezone: str = COMPLIANCE_TIMEZONE

    # Daily limits
    max_daily_hours: float = 9.0
    daily_warning_hours: float = 8.0
    daily_critical_hours: float = 12.0

    # Weekly limits
    max_weekly_hours_regular: float = 40.0
    max_weekly_hours_absolute: float = 48.0

    # Rest
    min_rest_hours_between_shifts: float = 12.0
    min_weekly_rest_hours: float = 35.0

    # Breaks
    mandatory_break_threshold_hours: float = 6.0
    mandatory_break_minutes: float = 15.0
    max_continuous_work_hours: float = 9.0

    # Night work
    max_night_work_hours: float = 8.0
    night_work_start_hour: int = 20
    night_work_end_hour: int = 6

    # Adolescents
    adolescent_age_threshold: int = 18
    adolescent_max_daily_hours: float = 8.0
    adolescent_max_weekly_hours: float = 40.0

    # Geofence
    geofence_radius_meters: float = GEOFENCE_RADIUS_METERS


@dataclass
class ValidationContext:
    """Everything the engine needs to evaluate one worker's time entry."""
    current_entry: TimeEntry
    all_entries: list[TimeEntry] = field(default_factory=list)  # Same worker, caller-scoped window
    breaks: list[BreakEntry] = field(default_factory=list)  # Breaks of current_entry
    user_age: Optional[int] = None
    is_pregnant: bool = False
    location_coords: Optional[Coordinates] = None  # Work site
    user_coords: Optional[Coordinates] = None  # Where the worker clocked in
    rules: ComplianceRules = field(default_factory=ComplianceRules)

    @property
    def entries(self) -> list[TimeEntry]:
        """All entries with current_entry in place of any stored copy sharing its id."""
        others = [e for e in self.all_entries if e.id != self.current_entry.id]
        return sorted([*others, self.current_entry], key=lambda e: to_utc(e.clock_in))


@dataclass(frozen=True)
class ValidationResult:
    """Verdict of a single rule.

    passed is None when the rule could not be evaluated because of malformed
    input; error then says why. Such a result is a system error, not a
    compliance verdict.
    """
    rule: RuleId
    passed: Optional[bool]
    message: str
    rule_reference: str
    severity: Optional[Severity] = None
    recommended_action: Optional[str] = None
    details: dict = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def cannot_evaluate(cls, rule: RuleId, rule_reference: str, error: str) -> "ValidationResult":
        return cls(
            rule=rule,
            passed=None,
            message=f"Cannot evaluate {rule.value}: {error}",
            rule_reference=rule_reference,
            error=error,
        )

    @property
    def is_error(self) -> bool:
        return self.passed is None

    @property
    def is_failure(self) -> bool:
        return self.passed is False

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rule": self.rule.value,
            "pass": self.passed,
            "severity": self.severity.value if self.severity else None,
            "message": self.message,
            "rule_reference": self.rule_reference,
            "recommended_action": self.recommended_action,
            "details": self.details,
            "error": self.error,
        }


@dataclass
class ComplianceReport:
    """The twelve results of one validation pass plus aggregates."""
    results: list[ValidationResult] = field(default_factory=list)

    def get(self, rule: RuleId) -> ValidationResult:
        for result in self.results:
            if result.rule == rule:
                return result
        raise KeyError(rule)

    @property
    def failures(self) -> list[ValidationResult]:
        return [r for r in self.results if r.is_failure]

    @property
    def errors(self) -> list[ValidationResult]:
        return [r for r in self.results if r.is_error]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def is_compliant(self) -> bool:
        return not self.failures and not self.has_errors

    @property
    def blocking(self) -> list[ValidationResult]:
        """Critical failures; callers usually refuse the mutation on these."""
        return [r for r in self.failures if r.severity == Severity.CRITICAL]

    @property
    def highest_severity(self) -> Optional[Severity]:
        severities = [r.severity for r in self.failures if r.severity]
        if not severities:
            return None
        return max(severities, key=lambda s: s.rank)

    @property
    def severity_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for result in self.results:
            if result.severity:
                counts[result.severity.value] += 1
        return counts

    @property
    def weekly_hours(self) -> Optional[float]:
        try:
            return self.get(RuleId.WEEKLY_LIMIT).details.get("weekly_hours")
        except KeyError:
            return None

    @property
    def overtime_hours(self) -> Optional[float]:
        try:
            return self.get(RuleId.OVERTIME).details.get("overtime_hours")
        except KeyError:
            return None

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "results": [r.to_dict() for r in self.results],
            "is_compliant": self.is_compliant,
            "has_errors": self.has_errors,
            "blocking_count": len(self.blocking),
            "failure_count": len(self.failures),
            "highest_severity": self.highest_severity.value if self.highest_severity else None,
            "severity_counts": self.severity_counts,
            "weekly_hours": self.weekly_hours,
            "overtime_hours": self.overtime_hours,
        }
