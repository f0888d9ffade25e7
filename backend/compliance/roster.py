"""Roster validation for proposed shift assignments.

Used while building a roster (before anyone clocks in) and before a week's
roster is published. Works on the shifts the caller already loaded; it never
reads storage.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from utils.time import hours_between, to_utc

from .errors import InvalidInputError
from .time_windows import TimeWindowCalculator
from .types import ComplianceRules, Severity, TimeEntry


@dataclass(frozen=True)
class ShiftData:
    """A scheduled (not yet worked) shift."""
    id: str
    start: datetime
    end: datetime
    break_minutes: int = 0
    location_id: Optional[str] = None

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise InvalidInputError(f"Shift {self.id}: start and end are required")

    def as_entry(self) -> TimeEntry:
        try:
            return TimeEntry(id=self.id, clock_in=self.start, clock_out=self.end, break_minutes=self.break_minutes)
        except InvalidInputError as e:
            raise InvalidInputError(f"Shift {self.id}: {e}") from None


@dataclass
class ValidationIssue:
    rule: str
    message: str
    severity: Severity
    rule_reference: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "rule": self.rule,
            "message": self.message,
            "severity": self.severity.value,
            "rule_reference": self.rule_reference,
        }


@dataclass
class RosterValidationResult:
    violations: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class WeeklyHoursSummary:
    user_id: str
    week_start: date
    total_hours: float
    shift_count: int


class RosterValidator:
    """Checks proposed shifts against daily, rest and weekly limits."""

    REST_LOOKAROUND = timedelta(hours=24)

    def __init__(self, rules: Optional[ComplianceRules] = None, warning_weekly_hours: float = 38.0):
        self.rules = rules or ComplianceRules()
        self.warning_weekly_hours = warning_weekly_hours
        self.calc = TimeWindowCalculator(self.rules.timezone)

    def validate_shift_assignment(
        self,
        existing: Iterable[ShiftData],
        proposed: ShiftData,
        exclude_id: Optional[str] = None,
    ) -> RosterValidationResult:
        """
        Validate a proposed shift for one worker.

        Args:
            existing: The worker's other scheduled shifts
            proposed: The shift being created or moved
            exclude_id: Shift being edited, ignored among existing

        Returns:
            RosterValidationResult; valid is False when any violation exists
        """
        rules = self.rules
        result = RosterValidationResult()
        proposed_entry = proposed.as_entry()
        others = [s for s in existing if s.id != exclude_id and s.id != proposed.id]

        # Shift duration
        shift_hours = self.calc.entry_hours(proposed_entry)
        if shift_hours > rules.max_daily_hours:
            result.violations.append(ValidationIssue(
                rule="daily_limit",
                message=f"Shift duration ({shift_hours:.1f}h) exceeds daily limit of {rules.max_daily_hours:g}h",
                severity=Severity.HIGH,
                rule_reference="Estatuto Art. 34.3",
            ))

        # Double booking
        start, end = to_utc(proposed.start), to_utc(proposed.end)
        if any(to_utc(s.start) < end and to_utc(s.end) > start for s in others):
            result.violations.append(ValidationIssue(
                rule="double_booking",
                message="User already has a shift scheduled at this time",
                severity=Severity.CRITICAL,
                rule_reference="Scheduling conflict",
            ))

        rest_issue = self._check_rest(others, proposed)
        if rest_issue:
            result.violations.append(rest_issue)

        # Weekly hours, including the proposed shift
        week_hours = self.calc.weekly_hours([s.as_entry() for s in others], proposed.start)
        projected = week_hours + shift_hours
        if projected > rules.max_weekly_hours_absolute:
            result.violations.append(ValidationIssue(
                rule="weekly_absolute_max",
                message=f"This shift would bring weekly total to {projected:.1f}h "
                        f"({rules.max_weekly_hours_absolute:g}h absolute max)",
                severity=Severity.CRITICAL,
                rule_reference="Estatuto Art. 34.1",
            ))
        elif projected > rules.max_weekly_hours_regular:
            result.violations.append(ValidationIssue(
                rule="weekly_limit",
                message=f"This shift would bring weekly total to {projected:.1f}h "
                        f"({rules.max_weekly_hours_regular:g}h regular max)",
                severity=Severity.HIGH,
                rule_reference="Estatuto Art. 34.1",
            ))
        elif projected >= self.warning_weekly_hours:
            result.warnings.append(ValidationIssue(
                rule="approaching_overtime",
                message=f"User will have {projected:.1f}h after this shift "
                        f"(approaching {rules.max_weekly_hours_regular:g}h limit)",
                severity=Severity.LOW,
            ))

        return result

    def _check_rest(self, others: list[ShiftData], proposed: ShiftData) -> Optional[ValidationIssue]:
        """Rest before the proposed shift and before the next scheduled one, within 24h."""
        min_rest = self.rules.min_rest_hours_between_shifts
        start, end = to_utc(proposed.start), to_utc(proposed.end)

        before = [s for s in others if start - self.REST_LOOKAROUND <= to_utc(s.end) <= start]
        if before:
            last_end = max(to_utc(s.end) for s in before)
            rest = hours_between(last_end, start)
            if rest < min_rest:
                return ValidationIssue(
                    rule="rest_period",
                    message=f"Only {rest:.1f}h rest since last shift ({min_rest:g}h required)",
                    severity=Severity.CRITICAL,
                    rule_reference="Estatuto Art. 34.3",
                )

        after = [s for s in others if end <= to_utc(s.start) <= end + self.REST_LOOKAROUND]
        if after:
            next_start = min(to_utc(s.start) for s in after)
            rest = hours_between(end, next_start)
            if rest < min_rest:
                return ValidationIssue(
                    rule="rest_period",
                    message=f"Only {rest:.1f}h rest before next shift ({min_rest:g}h required)",
                    severity=Severity.CRITICAL,
                    rule_reference="Estatuto Art. 34.3",
                )

        return None

    def weekly_summary(self, user_id: str, shifts: Iterable[ShiftData], reference) -> WeeklyHoursSummary:
        """Scheduled hours of one worker in the week containing reference."""
        week_entries = self.calc.entries_for_week([s.as_entry() for s in shifts], reference)
        return WeeklyHoursSummary(
            user_id=user_id,
            week_start=self.calc.week_start(reference),
            total_hours=self.calc.total_hours(week_entries),
            shift_count=len(week_entries),
        )

    def validate_roster_for_publish(self, shifts_by_user: dict[str, list[ShiftData]]) -> RosterValidationResult:
        """Validate a whole week's draft roster before publishing it."""
        rules = self.rules
        result = RosterValidationResult()

        for user_id, shifts in shifts_by_user.items():
            entries = [s.as_entry() for s in shifts]

            hours_by_week: dict[date, float] = defaultdict(float)
            for entry in entries:
                hours_by_week[self.calc.week_start(entry.clock_in)] += self.calc.entry_hours(entry)

            for week_start, total in sorted(hours_by_week.items()):
                if total > rules.max_weekly_hours_absolute:
                    result.violations.append(ValidationIssue(
                        rule="weekly_absolute_max",
                        message=f"User {user_id} has {total:.1f}h scheduled in week of {week_start.isoformat()} "
                                f"({rules.max_weekly_hours_absolute:g}h max)",
                        severity=Severity.CRITICAL,
                        rule_reference="Estatuto Art. 34.1",
                    ))
                elif total > rules.max_weekly_hours_regular:
                    result.warnings.append(ValidationIssue(
                        rule="weekly_overtime",
                        message=f"User {user_id} has {total:.1f}h scheduled in week of {week_start.isoformat()} "
                                "(overtime)",
                        severity=Severity.MEDIUM,
                        rule_reference="Estatuto Art. 34.1",
                    ))

            for gap in self.calc.rest_gaps(entries):
                if gap.hours < rules.min_rest_hours_between_shifts:
                    result.violations.append(ValidationIssue(
                        rule="rest_period",
                        message=f"User {user_id} has only {gap.hours:.1f}h rest between shifts "
                                f"{gap.previous.id} and {gap.following.id}",
                        severity=Severity.CRITICAL,
                        rule_reference="Estatuto Art. 34.3",
                    ))

        return result
