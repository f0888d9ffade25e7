"""Unit tests for day/week bucketing, rest gaps, night overlap and work segments."""

import pytest
from datetime import date

from compliance.time_windows import TimeWindowCalculator


@pytest.fixture
def calc():
    return TimeWindowCalculator("Europe/Madrid")


# ============================================================================
# ============================================================================


class TestCalendar:
    """Local day and Monday-based week bucketing."""

    def test_week_start_is_monday(self, calc, at):
        assert calc.week_start(at("2024-01-17", "12:00")) == date(2024, 1, 15)
        assert calc.week_start(date(2024, 1, 21)) == date(2024, 1, 15)
        assert calc.week_start(at("2024-01-22", "00:00")) == date(2024, 1, 22)

    def test_late_sunday_utc_instant_belongs_to_local_monday(self, calc, at):
        """23:30Z on Sunday is already Monday in Madrid."""
        instant = at("2024-01-22", "00:30")
        assert calc.local_date(instant) == date(2024, 1, 22)
        assert calc.week_start(instant) == date(2024, 1, 22)

    def test_week_bounds_span_seven_days(self, calc, at):
        begin, end = calc.week_bounds(at("2024-01-17", "10:00"))
        assert begin == at("2024-01-15", "00:00")
        assert end == at("2024-01-22", "00:00")
        assert (end - begin).days == 7

    def test_day_bounds_on_dst_day_are_23_hours(self, calc):
        begin, end = calc.day_bounds(date(2024, 3, 31))
        assert (end - begin).total_seconds() == 23 * 3600


class TestDurations:
    """Worked hours are measured on elapsed time."""

    def test_entry_hours_subtracts_break_minutes(self, calc, make_entry):
        entry = make_entry("e1", "2024-01-15", "09:00", "17:00", break_minutes=30)
        assert calc.entry_hours(entry) == pytest.approx(7.5)
        assert calc.entry_hours(entry, subtract_breaks=False) == pytest.approx(8.0)

    def test_open_entry_counts_zero(self, calc, make_entry):
        assert calc.entry_hours(make_entry("e1", "2024-01-15", "09:00")) == 0.0

    def test_spring_forward_night_shift_is_seven_hours(self, calc, make_entry):
        entry = make_entry("e1", "2024-03-30", "22:00", "06:00")
        assert calc.entry_hours(entry) == pytest.approx(7.0)

    def test_fall_back_night_shift_is_nine_hours(self, calc, make_entry):
        entry = make_entry("e1", "2024-10-26", "22:00", "06:00")
        assert calc.entry_hours(entry) == pytest.approx(9.0)

    def test_midnight_crossing_shift_counts_on_start_day(self, calc, make_entry):
        entry = make_entry("e1", "2024-01-15", "20:00", "04:00")
        assert calc.daily_hours([entry], date(2024, 1, 15)) == pytest.approx(8.0)
        assert calc.daily_hours([entry], date(2024, 1, 16)) == 0.0

    def test_sunday_night_shift_counts_in_starting_week(self, calc, make_entry):
        entry = make_entry("e1", "2024-01-21", "22:00", "06:00")
        assert calc.weekly_hours([entry], date(2024, 1, 15)) == pytest.approx(8.0)
        assert calc.weekly_hours([entry], date(2024, 1, 22)) == 0.0

    def test_weekly_hours_sums_only_the_week(self, calc, make_entry):
        entries = [
            make_entry("e1", "2024-01-15", "09:00", "17:00"),
            make_entry("e2", "2024-01-19", "09:00", "17:00"),
            make_entry("e3", "2024-01-22", "09:00", "17:00"),
        ]
        assert calc.weekly_hours(entries, date(2024, 1, 17)) == pytest.approx(16.0)


class TestRestGaps:
    """Rest between consecutive shifts."""

    def test_gaps_are_ordered_by_clock_in(self, calc, make_entry):
        later = make_entry("e2", "2024-01-16", "09:00", "17:00")
        earlier = make_entry("e1", "2024-01-15", "09:00", "17:00")
        gaps = calc.rest_gaps([later, earlier])
        assert len(gaps) == 1
        assert gaps[0].previous.id == "e1"
        assert gaps[0].hours == pytest.approx(16.0)

    def test_open_previous_entry_is_skipped(self, calc, make_entry):
        entries = [
            make_entry("e1", "2024-01-15", "09:00"),
            make_entry("e2", "2024-01-16", "09:00", "17:00"),
        ]
        assert calc.rest_gaps(entries) == []

    def test_open_following_entry_still_counts(self, calc, make_entry):
        entries = [
            make_entry("e1", "2024-01-15", "09:00", "17:00"),
            make_entry("e2", "2024-01-16", "03:00"),
        ]
        gaps = calc.rest_gaps(entries)
        assert gaps[0].hours == pytest.approx(10.0)


class TestLongestWeeklyRest:
    """Longest free span inside the week window."""

    def test_no_completed_shifts_returns_none(self, calc, make_entry):
        assert calc.longest_weekly_rest([make_entry("e1", "2024-01-15", "09:00")], date(2024, 1, 15)) is None

    def test_weekend_counts_up_to_window_end(self, calc, make_entry):
        entries = [make_entry(f"e{d}", f"2024-01-{d}", "09:00", "17:00") for d in range(15, 20)]
        # Friday 17:00 to Monday 00:00
        assert calc.longest_weekly_rest(entries, date(2024, 1, 15)) == pytest.approx(55.0)

    def test_shift_overlapping_window_start_is_clipped(self, calc, make_entry):
        entries = [
            make_entry("e0", "2024-01-14", "22:00", "06:00"),
            make_entry("e1", "2024-01-20", "09:00", "17:00"),
        ]
        # Monday 06:00 to Saturday 09:00
        assert calc.longest_weekly_rest(entries, date(2024, 1, 15)) == pytest.approx(123.0)


class TestNightHours:
    """Overlap with the 20:00-06:00 night window."""

    def test_day_shift_has_no_night_hours(self, calc, make_entry):
        assert calc.night_hours(make_entry("e1", "2024-01-15", "09:00", "17:00")) == 0.0

    def test_evening_shift_overlap(self, calc, make_entry):
        assert calc.night_hours(make_entry("e1", "2024-01-15", "16:00", "23:00")) == pytest.approx(3.0)

    def test_early_morning_overlap(self, calc, make_entry):
        assert calc.night_hours(make_entry("e1", "2024-01-15", "04:00", "12:00")) == pytest.approx(2.0)

    def test_breaks_inside_night_are_subtracted(self, calc, make_entry, make_break):
        entry = make_entry("e1", "2024-01-15", "20:00", "06:00")
        brk = make_break("e1", "2024-01-16", "00:00", "02:00")
        assert calc.night_hours(entry) == pytest.approx(10.0)
        assert calc.night_hours(entry, [brk]) == pytest.approx(8.0)

    def test_overlapping_breaks_are_subtracted_once(self, calc, make_entry, make_break):
        entry = make_entry("e1", "2024-01-15", "20:00", "06:00")
        breaks = [
            make_break("e1", "2024-01-16", "00:00", "02:00", break_id="b1"),
            make_break("e1", "2024-01-16", "01:00", "03:00", break_id="b2"),
            make_break("e1", "2024-01-16", "01:30", "01:45", break_id="b3"),
        ]
        # Union is 00:00-03:00
        assert calc.night_hours(entry, breaks) == pytest.approx(7.0)

    def test_is_night_boundaries(self, calc, at):
        assert calc.is_night(at("2024-01-15", "20:00"))
        assert calc.is_night(at("2024-01-15", "05:59"))
        assert not calc.is_night(at("2024-01-15", "06:00"))
        assert not calc.is_night(at("2024-01-15", "19:59"))

    def test_night_start_is_configurable(self, make_entry):
        calc = TimeWindowCalculator("Europe/Madrid", night_start_hour=22)
        assert calc.night_hours(make_entry("e1", "2024-01-15", "16:00", "23:00")) == pytest.approx(1.0)


class TestWorkSegments:
    """Segments split at recorded breaks."""

    def test_no_breaks_is_one_segment(self, calc, make_entry):
        segments = calc.work_segments(make_entry("e1", "2024-01-15", "08:00", "18:00"), [])
        assert len(segments) == 1

    def test_breaks_split_segments(self, calc, make_entry, make_break, at):
        entry = make_entry("e1", "2024-01-15", "08:00", "18:00")
        segments = calc.work_segments(entry, [make_break("e1", "2024-01-15", "13:00", "13:30")])
        assert len(segments) == 2
        assert segments[0][1] == at("2024-01-15", "13:00")
        assert segments[1][0] == at("2024-01-15", "13:30")

    def test_breaks_of_other_entries_ignored(self, calc, make_entry, make_break):
        entry = make_entry("e1", "2024-01-15", "08:00", "18:00")
        segments = calc.work_segments(entry, [make_break("other", "2024-01-15", "13:00", "13:30")])
        assert len(segments) == 1
