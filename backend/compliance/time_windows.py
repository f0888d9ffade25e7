"""Daily, weekly and continuous-work windows over time entries.

Instants are compared and subtracted in UTC. The configured IANA timezone is
only used to decide which local calendar day or ISO week a shift belongs to,
so DST transitions never stretch or shrink a measured duration.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from utils.time import hours_between, to_utc

from .config import COMPLIANCE_TIMEZONE
from .types import BreakEntry, TimeEntry

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class RestGap:
    """Rest between the end of one shift and the start of the next."""
    previous: TimeEntry
    following: TimeEntry
    hours: float


class TimeWindowCalculator:
    """Buckets time entries into local days and Monday-based weeks."""

    def __init__(
        self,
        tz: Union[str, ZoneInfo] = COMPLIANCE_TIMEZONE,
        night_start_hour: int = 20,
        night_end_hour: int = 6,
    ):
        self.zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
        self.night_start_hour = night_start_hour
        self.night_end_hour = night_end_hour

    # ------------------------------------------------------------------
    # Calendar helpers
    # ------------------------------------------------------------------

    def to_local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.zone)

    def local_date(self, reference: DateLike) -> date:
        if isinstance(reference, datetime):
            return self.to_local(reference).date()
        return reference

    def _local_midnight_utc(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.zone).astimezone(timezone.utc)

    def day_bounds(self, reference: DateLike) -> tuple[datetime, datetime]:
        """UTC [start, end) of the local calendar day containing reference."""
        day = self.local_date(reference)
        return self._local_midnight_utc(day), self._local_midnight_utc(day + timedelta(days=1))

    def week_start(self, reference: DateLike) -> date:
        """Monday of the week containing reference."""
        day = self.local_date(reference)
        return day - timedelta(days=day.weekday())

    def week_bounds(self, reference: DateLike) -> tuple[datetime, datetime]:
        """UTC [Monday 00:00, next Monday 00:00) in local time."""
        monday = self.week_start(reference)
        return self._local_midnight_utc(monday), self._local_midnight_utc(monday + timedelta(days=7))

    # ------------------------------------------------------------------
    # Durations
    # ------------------------------------------------------------------

    @staticmethod
    def entry_hours(entry: TimeEntry, subtract_breaks: bool = True) -> float:
        """Worked hours of a closed entry; open entries contribute nothing."""
        if entry.clock_out is None:
            return 0.0
        hours = hours_between(entry.clock_in, entry.clock_out)
        if subtract_breaks:
            hours -= entry.break_minutes / 60
        return max(0.0, hours)

    def total_hours(self, entries: Iterable[TimeEntry]) -> float:
        return sum(self.entry_hours(e) for e in entries)

    def entries_for_day(self, entries: Iterable[TimeEntry], reference: DateLike) -> list[TimeEntry]:
        """Entries whose clock-in falls on the local day; midnight-crossers stay on their start day."""
        day = self.local_date(reference)
        return [e for e in entries if self.local_date(e.clock_in) == day]

    def entries_for_week(self, entries: Iterable[TimeEntry], reference: DateLike) -> list[TimeEntry]:
        """Entries whose clock-in falls in the local Monday-based week."""
        monday = self.week_start(reference)
        return [e for e in entries if self.week_start(e.clock_in) == monday]

    def daily_hours(self, entries: Iterable[TimeEntry], reference: DateLike) -> float:
        return self.total_hours(self.entries_for_day(entries, reference))

    def weekly_hours(self, entries: Iterable[TimeEntry], reference: DateLike) -> float:
        return self.total_hours(self.entries_for_week(entries, reference))

    # ------------------------------------------------------------------
    # Rest
    # ------------------------------------------------------------------

    @staticmethod
    def sort_by_clock_in(entries: Iterable[TimeEntry]) -> list[TimeEntry]:
        return sorted(entries, key=lambda e: to_utc(e.clock_in))

    def rest_gaps(self, entries: Iterable[TimeEntry]) -> list[RestGap]:
        """Gaps between consecutive shifts ordered by clock-in.

        The earlier shift must be closed; the later one may still be open,
        since its clock-in alone fixes where the rest period ended.
        """
        ordered = self.sort_by_clock_in(entries)
        gaps = []
        for previous, following in zip(ordered, ordered[1:]):
            if previous.clock_out is None:
                continue
            gaps.append(RestGap(
                previous=previous,
                following=following,
                hours=hours_between(previous.clock_out, following.clock_in),
            ))
        return gaps

    def longest_weekly_rest(self, entries: Iterable[TimeEntry], reference: DateLike) -> Optional[float]:
        """Longest shift-free span inside the week window, or None without completed shifts.

        Completed shifts overlapping the window are clipped to it; the window
        edges bound the first and last free spans.
        """
        week_begin, week_end = self.week_bounds(reference)
        busy = []
        for entry in entries:
            if entry.clock_out is None:
                continue
            start, end = to_utc(entry.clock_in), to_utc(entry.clock_out)
            if end <= week_begin or start >= week_end:
                continue
            busy.append((max(start, week_begin), min(end, week_end)))

        if not busy:
            return None

        busy.sort()
        longest = 0.0
        cursor = week_begin
        for start, end in busy:
            if start > cursor:
                longest = max(longest, (start - cursor).total_seconds() / 3600)
            cursor = max(cursor, end)
        if week_end > cursor:
            longest = max(longest, (week_end - cursor).total_seconds() / 3600)
        return longest

    # ------------------------------------------------------------------
    # Night work
    # ------------------------------------------------------------------

    def is_night(self, instant: datetime) -> bool:
        hour = self.to_local(instant).hour
        return hour >= self.night_start_hour or hour < self.night_end_hour

    def night_windows(self, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
        """UTC night windows (start hour to end hour next morning) touching [start, end)."""
        first_day = self.local_date(start) - timedelta(days=1)
        last_day = self.local_date(end)
        windows = []
        day = first_day
        while day <= last_day:
            night_begin = datetime.combine(day, time(self.night_start_hour), tzinfo=self.zone)
            night_end = datetime.combine(day + timedelta(days=1), time(self.night_end_hour), tzinfo=self.zone)
            windows.append((to_utc(night_begin), to_utc(night_end)))
            day += timedelta(days=1)
        return windows

    def night_hours(self, entry: TimeEntry, breaks: Iterable[BreakEntry] = ()) -> float:
        """Hours of the shift inside the night window, minus closed breaks taken there."""
        if entry.clock_out is None:
            return 0.0
        shift_start, shift_end = to_utc(entry.clock_in), to_utc(entry.clock_out)
        windows = self.night_windows(shift_start, shift_end)

        seconds = 0.0
        for window_start, window_end in windows:
            seconds += _overlap_seconds(shift_start, shift_end, window_start, window_end)

        spans = [
            (max(to_utc(brk.break_start), shift_start), min(to_utc(brk.break_end), shift_end))
            for brk in breaks
            if brk.time_entry_id == entry.id and brk.break_end is not None
        ]
        for brk_start, brk_end in _merge_spans(spans):
            for window_start, window_end in windows:
                seconds -= _overlap_seconds(brk_start, brk_end, window_start, window_end)

        return max(0.0, seconds / 3600)

    # ------------------------------------------------------------------
    # Continuous work
    # ------------------------------------------------------------------

    @staticmethod
    def work_segments(entry: TimeEntry, breaks: Iterable[BreakEntry]) -> list[tuple[datetime, datetime]]:
        """Uninterrupted work intervals of a closed entry, split at every closed break."""
        if entry.clock_out is None:
            return []
        entry_breaks = sorted(
            (b for b in breaks if b.time_entry_id == entry.id and b.break_end is not None),
            key=lambda b: to_utc(b.break_start),
        )

        segments = []
        segment_start = to_utc(entry.clock_in)
        shift_end = to_utc(entry.clock_out)
        for brk in entry_breaks:
            brk_start = min(max(to_utc(brk.break_start), segment_start), shift_end)
            segments.append((segment_start, brk_start))
            segment_start = max(segment_start, min(to_utc(brk.break_end), shift_end))
        segments.append((segment_start, shift_end))
        return segments


def _overlap_seconds(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> float:
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    return max(0.0, (end - start).total_seconds())


def _merge_spans(spans: Iterable[tuple[datetime, datetime]]) -> list[tuple[datetime, datetime]]:
    """Union of possibly overlapping [start, end) spans, sorted; empty spans dropped."""
    merged: list[tuple[datetime, datetime]] = []
    for start, end in sorted(s for s in spans if s[1] > s[0]):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged
