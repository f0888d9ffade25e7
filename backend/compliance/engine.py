"""Compliance validation engine that orchestrates all validators."""

import logging
from datetime import datetime
from typing import Any, Optional

from dateutil import parser

from .errors import InvalidInputError
from .types import (
    BreakEntry,
    BreakType,
    ComplianceReport,
    ComplianceRules,
    Coordinates,
    RuleId,
    TimeEntry,
    ValidationContext,
    ValidationResult,
)
from .validators import (
    BaseValidator,
    DailyLimitValidator,
    WeeklyLimitValidator,
    RestPeriodValidator,
    MandatoryBreakValidator,
    ContinuousWorkValidator,
    WeeklyRestValidator,
    NightWorkValidator,
    OvertimeValidator,
    AbsoluteWeeklyMaxValidator,
    AdolescentRestrictionsValidator,
    PregnantWorkerValidator,
    GeofenceValidator,
)

logger = logging.getLogger(__name__)


class ComplianceValidator:
    """
    Main engine for running compliance validation.

    Runs every rule against one ValidationContext and always returns one
    result per rule, in RuleId order, whatever the earlier results were.
    Holds no mutable state, so one instance can be shared across threads.
    """

    def __init__(self):
        """Initialize with all validators."""
        self.validators: list[BaseValidator] = [
            DailyLimitValidator(),
            WeeklyLimitValidator(),
            RestPeriodValidator(),
            MandatoryBreakValidator(),
            ContinuousWorkValidator(),
            WeeklyRestValidator(),
            NightWorkValidator(),
            OvertimeValidator(),
            AbsoluteWeeklyMaxValidator(),
            AdolescentRestrictionsValidator(),
            PregnantWorkerValidator(),
            GeofenceValidator(),
        ]

        configured = [v.rule for v in self.validators]
        if configured != list(RuleId):
            raise RuntimeError(f"Validators {configured} do not cover rules {list(RuleId)} in order")

    def validate_all(self, context: ValidationContext) -> list[ValidationResult]:
        """
        Run all compliance validations.

        Args:
            context: The worker's current entry, history, breaks and facts

        Returns:
            Twelve ValidationResults in RuleId order. A rule that cannot be
            evaluated because of malformed input yields a result with
            passed=None instead of aborting the others.
        """
        results = []
        for validator in self.validators:
            try:
                result = validator.validate(context)
            except InvalidInputError as e:
                logger.warning(f"Rule {validator.rule.value} could not be evaluated for entry "
                               f"{context.current_entry.id}: {e}")
                result = ValidationResult.cannot_evaluate(validator.rule, validator.rule_reference, str(e))
            results.append(result)

        failed = [r.rule.value for r in results if r.is_failure]
        logger.debug(f"Validated entry {context.current_entry.id}: "
                     f"{len(failed)} of {len(results)} rules failed {failed}")
        return results

    def report(self, context: ValidationContext) -> ComplianceReport:
        """Run all validations and wrap them with aggregate counts."""
        return ComplianceReport(results=self.validate_all(context))

    @classmethod
    def build_context(
        cls,
        current_entry: dict,
        all_entries: Optional[list[dict]] = None,
        breaks: Optional[list[dict]] = None,
        user_age: Optional[int] = None,
        is_pregnant: bool = False,
        location_coords: Any = None,
        user_coords: Any = None,
        rules: Optional[ComplianceRules] = None,
    ) -> ValidationContext:
        """
        Build a ValidationContext from raw data.

        Args:
            current_entry: Time entry dict with id, clock_in, clock_out, break_minutes
            all_entries: Other entries of the same worker
            breaks: Break dicts belonging to current_entry
            user_age: Worker age in years
            is_pregnant: Whether pregnant-worker protections apply
            location_coords: Work site as [lat, lng] or {"lat", "lng"}
            user_coords: Clock-in position as [lat, lng] or {"lat", "lng"}
            rules: Thresholds, defaults to ComplianceRules()

        Returns:
            ValidationContext ready for validation

        Raises:
            InvalidInputError: timestamps missing, unparseable or without offset
        """
        return ValidationContext(
            current_entry=cls._parse_entry(current_entry),
            all_entries=[cls._parse_entry(e) for e in all_entries or []],
            breaks=[cls._parse_break(b) for b in breaks or []],
            user_age=user_age,
            is_pregnant=bool(is_pregnant),
            location_coords=_parse_coords(location_coords),
            user_coords=_parse_coords(user_coords),
            rules=rules or ComplianceRules(),
        )

    @staticmethod
    def _parse_entry(raw: dict) -> TimeEntry:
        """Convert a time entry dict to a TimeEntry."""
        if "id" not in raw or "clock_in" not in raw:
            raise InvalidInputError(f"Time entry requires id and clock_in: {raw}")
        return TimeEntry(
            id=str(raw["id"]),
            clock_in=parse_instant(raw["clock_in"]),
            clock_out=parse_instant(raw.get("clock_out")),
            break_minutes=int(raw.get("break_minutes") or 0),
            clock_in_location=_parse_coords(raw.get("clock_in_location")),
            clock_out_location=_parse_coords(raw.get("clock_out_location")),
            user_id=raw.get("user_id"),
        )

    @staticmethod
    def _parse_break(raw: dict) -> BreakEntry:
        """Convert a break dict to a BreakEntry."""
        if "id" not in raw or "time_entry_id" not in raw or "break_start" not in raw:
            raise InvalidInputError(f"Break requires id, time_entry_id and break_start: {raw}")
        try:
            break_type = BreakType(raw.get("break_type") or BreakType.UNPAID)
        except ValueError:
            raise InvalidInputError(f"Unknown break type {raw.get('break_type')!r}") from None
        return BreakEntry(
            id=str(raw["id"]),
            time_entry_id=str(raw["time_entry_id"]),
            break_start=parse_instant(raw["break_start"]),
            break_end=parse_instant(raw.get("break_end")),
            break_type=break_type,
        )


def parse_instant(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass a datetime through); empty values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parser.isoparse(str(value))
    except (ValueError, OverflowError):
        raise InvalidInputError(f"Unparseable timestamp {value!r}") from None


def _parse_coords(value: Any) -> Optional[Coordinates]:
    """Accept [lat, lng], (lat, lng) or {"lat": .., "lng": ..}; range is checked by the geofence rule."""
    if value is None:
        return None
    if isinstance(value, Coordinates):
        return value
    if isinstance(value, dict):
        if "lat" not in value or "lng" not in value:
            raise InvalidInputError(f"Coordinates require lat and lng: {value}")
        return Coordinates(value["lat"], value["lng"])
    try:
        lat, lng = value
    except (TypeError, ValueError):
        raise InvalidInputError(f"Coordinates must be a (lat, lng) pair: {value!r}") from None
    return Coordinates(lat, lng)
