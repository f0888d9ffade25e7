"""Compliance validators for Spanish labor law enforcement.

Each validator checks one rule and returns exactly one ValidationResult.
Validators never mutate the context and never raise for a violation; they
raise InvalidInputError only when the input leaves nothing to evaluate.
"""

from abc import ABC, abstractmethod
from typing import Optional

from utils.time import minutes_between

from .errors import InvalidInputError
from .geofence import GeofenceChecker, format_distance
from .time_windows import TimeWindowCalculator
from .types import RuleId, Severity, ValidationContext, ValidationResult


class BaseValidator(ABC):
    """Base class for compliance validators."""

    rule: RuleId
    rule_reference: str

    @abstractmethod
    def validate(self, context: ValidationContext) -> ValidationResult:
        """Evaluate the rule against the context."""
        pass

    @staticmethod
    def calculator(context: ValidationContext) -> TimeWindowCalculator:
        rules = context.rules
        return TimeWindowCalculator(
            rules.timezone,
            night_start_hour=rules.night_work_start_hour,
            night_end_hour=rules.night_work_end_hour,
        )

    def passed(
        self,
        message: str,
        severity: Optional[Severity] = None,
        recommended_action: Optional[str] = None,
        **details,
    ) -> ValidationResult:
        return ValidationResult(
            rule=self.rule,
            passed=True,
            message=message,
            rule_reference=self.rule_reference,
            severity=severity,
            recommended_action=recommended_action,
            details=details,
        )

    def failed(
        self,
        severity: Severity,
        message: str,
        recommended_action: Optional[str] = None,
        **details,
    ) -> ValidationResult:
        return ValidationResult(
            rule=self.rule,
            passed=False,
            message=message,
            rule_reference=self.rule_reference,
            severity=severity,
            recommended_action=recommended_action,
            details=details,
        )


class DailyLimitValidator(BaseValidator):
    """1. Daily hours limit (9h max), attributed to the shift's start day."""

    rule = RuleId.DAILY_LIMIT
    rule_reference = "Estatuto Art. 34.3"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        hours = self.calculator(context).daily_hours(context.entries, context.current_entry.clock_in)
        details = {"daily_hours": round(hours, 2), "max_daily_hours": rules.max_daily_hours}

        if hours < rules.daily_warning_hours:
            return self.passed(f"Daily hours ({hours:.1f}h) within limit", **details)

        if hours <= rules.max_daily_hours:
            return self.passed(
                f"Daily hours ({hours:.1f}h) within limit, approaching the {rules.max_daily_hours:g}h maximum",
                recommended_action="Avoid extending this shift or adding work today",
                **details,
            )

        severity = Severity.CRITICAL if hours >= rules.daily_critical_hours else Severity.HIGH
        return self.failed(
            severity,
            f"Daily hours ({hours:.1f}h) exceed limit of {rules.max_daily_hours:g}h",
            "Contact your manager for approval and document the exception",
            **details,
        )


class WeeklyLimitValidator(BaseValidator):
    """2. Weekly regular hours (40h) in the Monday-based week."""

    rule = RuleId.WEEKLY_LIMIT
    rule_reference = "Estatuto Art. 34.1"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        hours = self.calculator(context).weekly_hours(context.entries, context.current_entry.clock_in)
        details = {"weekly_hours": round(hours, 2), "max_weekly_hours": rules.max_weekly_hours_regular}

        if hours <= rules.max_weekly_hours_regular:
            return self.passed(f"Weekly hours ({hours:.1f}h) within regular limit", **details)

        return self.failed(
            Severity.MEDIUM,
            f"Weekly hours ({hours:.1f}h) exceed regular limit of {rules.max_weekly_hours_regular:g}h",
            f"Hours between {rules.max_weekly_hours_regular:g}-{rules.max_weekly_hours_absolute:g} "
            "count as overtime and require compensation",
            **details,
        )


class RestPeriodValidator(BaseValidator):
    """3. Minimum rest (12h) between consecutive shifts."""

    rule = RuleId.REST_PERIOD
    rule_reference = "Estatuto Art. 34.3"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        entries = context.entries
        if len(entries) < 2:
            return self.passed("Insufficient shift history to validate rest period")

        gaps = self.calculator(context).rest_gaps(entries)
        if not gaps:
            return self.passed("Insufficient shift history to validate rest period")

        for gap in gaps:
            if gap.hours < rules.min_rest_hours_between_shifts:
                return self.failed(
                    Severity.CRITICAL,
                    f"Rest period ({gap.hours:.1f}h) below minimum of {rules.min_rest_hours_between_shifts:g}h",
                    f"Schedule must ensure {rules.min_rest_hours_between_shifts:g} hours between "
                    "shift end and next shift start",
                    rest_hours=round(gap.hours, 2),
                    min_rest_hours=rules.min_rest_hours_between_shifts,
                    previous_entry_id=gap.previous.id,
                    following_entry_id=gap.following.id,
                )

        shortest = min(gap.hours for gap in gaps)
        return self.passed(
            f"All rest periods meet minimum requirement (shortest {shortest:.1f}h)",
            shortest_rest_hours=round(shortest, 2),
        )


class MandatoryBreakValidator(BaseValidator):
    """4. Shifts longer than 6h need at least 15 minutes of break."""

    rule = RuleId.MANDATORY_BREAK
    rule_reference = "Estatuto Art. 34.4"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        entry = context.current_entry
        if entry.is_open:
            return self.passed("Shift not yet complete")

        shift_hours = TimeWindowCalculator.entry_hours(entry, subtract_breaks=False)
        if shift_hours <= rules.mandatory_break_threshold_hours:
            return self.passed(
                f"Shift ({shift_hours:.1f}h) does not require mandatory break",
                shift_hours=round(shift_hours, 2),
            )

        break_minutes = sum(
            minutes_between(b.break_start, b.break_end)
            for b in context.breaks
            if b.time_entry_id == entry.id and b.break_end is not None
        )
        details = {
            "shift_hours": round(shift_hours, 2),
            "break_minutes": round(break_minutes, 2),
            "required_break_minutes": rules.mandatory_break_minutes,
        }

        if break_minutes >= rules.mandatory_break_minutes:
            return self.passed(f"Break time ({break_minutes:.0f}min) meets requirement", **details)

        return self.failed(
            Severity.HIGH,
            f"Shift >{rules.mandatory_break_threshold_hours:g}h requires "
            f"{rules.mandatory_break_minutes:g}min break (current: {break_minutes:.0f}min)",
            "Ensure employee takes mandatory break before end of shift",
            **details,
        )


class ContinuousWorkValidator(BaseValidator):
    """5. No uninterrupted work segment longer than 9h.

    Any recorded break ends a segment. A break placed after the limit was
    already passed does not cure the earlier segment.
    """

    rule = RuleId.CONTINUOUS_WORK
    rule_reference = "Estatuto Art. 34.4"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        entry = context.current_entry
        if entry.is_open:
            return self.passed("Shift not yet complete")

        segments = TimeWindowCalculator.work_segments(entry, context.breaks)
        lengths = [(end - start).total_seconds() / 3600 for start, end in segments]
        limit = rules.max_continuous_work_hours

        for index, hours in enumerate(lengths):
            if hours <= limit:
                continue
            if len(lengths) == 1:
                message = f"Continuous work ({hours:.1f}h) exceeds {limit:g}h without break"
                action = "Schedule break within continuous work period"
            elif index == len(lengths) - 1:
                message = f"Final work segment ({hours:.1f}h) exceeds {limit:g}h"
                action = "Additional break needed before end of shift"
            else:
                message = f"Continuous work segment ({hours:.1f}h) exceeds {limit:g}h"
                action = "Break should be scheduled earlier in shift"
            return self.failed(
                Severity.HIGH,
                message,
                action,
                segment_index=index,
                segment_hours=round(hours, 2),
                max_continuous_hours=limit,
            )

        return self.passed(
            "Continuous work periods within acceptable limits",
            longest_segment_hours=round(max(lengths), 2),
        )


class WeeklyRestValidator(BaseValidator):
    """6. At least 35 continuous hours off somewhere in the week."""

    rule = RuleId.WEEKLY_REST
    rule_reference = "Estatuto Art. 37.1"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        longest = self.calculator(context).longest_weekly_rest(context.entries, context.current_entry.clock_in)
        if longest is None:
            return self.passed("No completed shifts this week")

        details = {"longest_rest_hours": round(longest, 2), "min_weekly_rest_hours": rules.min_weekly_rest_hours}
        if longest >= rules.min_weekly_rest_hours:
            return self.passed(f"Weekly rest period ({longest:.1f}h) meets requirement", **details)

        return self.failed(
            Severity.CRITICAL,
            f"No {rules.min_weekly_rest_hours:g}h continuous rest period found (max: {longest:.1f}h)",
            f"Schedule must include {rules.min_weekly_rest_hours:g} continuous hours rest per week",
            **details,
        )


class NightWorkValidator(BaseValidator):
    """7. Night work (20:00-06:00) capped at 8h per shift."""

    rule = RuleId.NIGHT_WORK
    rule_reference = "Estatuto Art. 36"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        entry = context.current_entry
        if entry.is_open:
            return self.passed("Shift not yet complete")

        night_hours = self.calculator(context).night_hours(entry, context.breaks)
        details = {"night_hours": round(night_hours, 2), "max_night_hours": rules.max_night_work_hours}

        if night_hours <= rules.max_night_work_hours:
            return self.passed(f"Night work hours ({night_hours:.1f}h) within limit", **details)

        return self.failed(
            Severity.HIGH,
            f"Night work hours ({night_hours:.1f}h) exceed limit of {rules.max_night_work_hours:g}h",
            "Limit night shift duration or schedule breaks during night hours",
            **details,
        )


class OvertimeValidator(BaseValidator):
    """8. Tracks overtime between 40h and 48h per week.

    Overtime inside the legal band is informational (passes with low
    severity). Beyond 48h this rule fails alongside the absolute maximum.
    """

    rule = RuleId.OVERTIME
    rule_reference = "Estatuto Art. 34.1"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        hours = self.calculator(context).weekly_hours(context.entries, context.current_entry.clock_in)
        regular = rules.max_weekly_hours_regular
        absolute = rules.max_weekly_hours_absolute

        overtime = max(0.0, hours - regular)
        details = {
            "weekly_hours": round(hours, 2),
            "overtime_hours": round(min(overtime, absolute - regular), 2),
        }

        if hours <= regular:
            return self.passed(f"No overtime ({hours:.1f}h <= {regular:g}h)", **details)

        if hours <= absolute:
            return self.passed(
                f"Overtime tracked: {overtime:.1f}h (within legal limit)",
                severity=Severity.LOW,
                recommended_action="Ensure overtime is compensated or offset with time off",
                **details,
            )

        return self.failed(
            Severity.CRITICAL,
            f"Overtime ({overtime:.1f}h) causes total to exceed absolute maximum",
            f"Total weekly hours cannot exceed {absolute:g}h including overtime",
            excess_hours=round(hours - absolute, 2),
            **details,
        )


class AbsoluteWeeklyMaxValidator(BaseValidator):
    """9. Hard weekly ceiling of 48h including overtime."""

    rule = RuleId.ABSOLUTE_WEEKLY_MAX
    rule_reference = "Estatuto Art. 34.1"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        hours = self.calculator(context).weekly_hours(context.entries, context.current_entry.clock_in)
        details = {"weekly_hours": round(hours, 2), "max_weekly_hours": rules.max_weekly_hours_absolute}

        if hours <= rules.max_weekly_hours_absolute:
            return self.passed(f"Weekly hours ({hours:.1f}h) within absolute maximum", **details)

        return self.failed(
            Severity.CRITICAL,
            f"Weekly hours ({hours:.1f}h) exceed absolute maximum of {rules.max_weekly_hours_absolute:g}h",
            "Immediate action required - no further work allowed this week",
            **details,
        )


class AdolescentRestrictionsValidator(BaseValidator):
    """10. Workers under 18: 8h per day and 40h per week."""

    rule = RuleId.ADOLESCENT
    rule_reference = "Estatuto Art. 34.3"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        age = context.user_age
        if age is None:
            return self.passed("Not applicable (age not provided)")
        if age < 0:
            raise InvalidInputError(f"user_age cannot be negative, got {age}")
        if age >= rules.adolescent_age_threshold:
            return self.passed(f"Not applicable (user is {rules.adolescent_age_threshold} or older)")

        calc = self.calculator(context)
        reference = context.current_entry.clock_in
        daily = calc.daily_hours(context.entries, reference)
        weekly = calc.weekly_hours(context.entries, reference)
        details = {"daily_hours": round(daily, 2), "weekly_hours": round(weekly, 2), "user_age": age}

        if daily > rules.adolescent_max_daily_hours:
            return self.failed(
                Severity.CRITICAL,
                f"Adolescent daily hours ({daily:.1f}h) exceed limit of {rules.adolescent_max_daily_hours:g}h",
                f"Adolescent workers (<{rules.adolescent_age_threshold}) have stricter hour limits",
                **details,
            )

        if weekly > rules.adolescent_max_weekly_hours:
            return self.failed(
                Severity.CRITICAL,
                f"Adolescent weekly hours ({weekly:.1f}h) exceed limit of {rules.adolescent_max_weekly_hours:g}h",
                f"Adolescent workers (<{rules.adolescent_age_threshold}) cannot work more than "
                f"{rules.adolescent_max_weekly_hours:g}h/week",
                **details,
            )

        return self.passed("Adolescent restrictions met", **details)


class PregnantWorkerValidator(BaseValidator):
    """11. Pregnant workers may not be assigned shifts touching the night window."""

    rule = RuleId.PREGNANT_WORKER
    rule_reference = "Ley 31/1995 Art. 26"

    def validate(self, context: ValidationContext) -> ValidationResult:
        if not context.is_pregnant:
            return self.passed("Not applicable")

        calc = self.calculator(context)
        entry = context.current_entry
        clock_in_night = calc.is_night(entry.clock_in)
        clock_out_night = entry.clock_out is not None and calc.is_night(entry.clock_out)
        night_hours = calc.night_hours(entry)

        if clock_in_night or clock_out_night or night_hours > 0:
            return self.failed(
                Severity.CRITICAL,
                "Pregnant workers should not be assigned night shifts",
                "Reassign to daytime shift immediately",
                clock_in_night=clock_in_night,
                clock_out_night=clock_out_night,
                night_hours=round(night_hours, 2),
            )

        return self.passed("Pregnant worker protections met")


class GeofenceValidator(BaseValidator):
    """12. Clock-in must happen within the site's geofence radius."""

    rule = RuleId.GEOFENCE
    rule_reference = "Organization geofence policy"

    def validate(self, context: ValidationContext) -> ValidationResult:
        rules = context.rules
        if context.location_coords is None:
            return self.passed("Geofence not configured for this location")

        user_coords = context.user_coords or context.current_entry.clock_in_location
        if user_coords is None:
            raise InvalidInputError("No clock-in coordinates supplied for a geofenced location")

        check = GeofenceChecker(rules.geofence_radius_meters).check(user_coords, context.location_coords)
        details = {
            "distance_meters": round(check.distance_meters, 1),
            "radius_meters": check.radius_meters,
        }

        if check.within_radius:
            return self.passed(
                f"Clock-in location verified ({check.distance_meters:.1f}m from site)",
                **details,
            )

        return self.failed(
            check.severity,
            f"Clock-in location ({format_distance(check.distance_meters)}) exceeds geofence "
            f"radius ({check.radius_meters:g}m)",
            "Verify employee is at correct work location",
            **details,
        )
