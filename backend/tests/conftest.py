import pytest
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from compliance.types import BreakEntry, ComplianceRules, TimeEntry, ValidationContext

MADRID = ZoneInfo("Europe/Madrid")


@pytest.fixture
def site():
    """Work site used across geofence tests (Puerta del Sol)."""
    return (40.4168, -3.7038)


@pytest.fixture
def at():
    """Factory for Madrid-local aware datetimes."""
    def _at(day: str, clock: str = "00:00") -> datetime:
        return datetime.fromisoformat(f"{day}T{clock}").replace(tzinfo=MADRID)
    return _at


@pytest.fixture
def rules():
    """Default thresholds, pinned to Madrid whatever the environment says."""
    return ComplianceRules(timezone="Europe/Madrid", geofence_radius_meters=50.0)


@pytest.fixture
def make_entry(at):
    """Factory to create TimeEntry objects from local day and clock strings.

    An end clock earlier than the start clock rolls over to the next day.
    """
    def _make_entry(
        entry_id: str,
        day: str,
        start: str,
        end: str | None = None,
        end_day: str | None = None,
        break_minutes: int = 0,
        **kwargs
    ) -> TimeEntry:
        clock_in = at(day, start)
        clock_out = None
        if end is not None:
            if end_day is None:
                end_day = day
                if end <= start:
                    end_day = (date.fromisoformat(day) + timedelta(days=1)).isoformat()
            clock_out = at(end_day, end)
        return TimeEntry(
            id=entry_id,
            clock_in=clock_in,
            clock_out=clock_out,
            break_minutes=break_minutes,
            **kwargs
        )
    return _make_entry


@pytest.fixture
def make_break(at):
    """Factory to create BreakEntry objects on a local day."""
    def _make_break(entry_id: str, day: str, start: str, end: str | None = None, break_id: str = None) -> BreakEntry:
        return BreakEntry(
            id=break_id or f"break-{entry_id}-{start}",
            time_entry_id=entry_id,
            break_start=at(day, start),
            break_end=at(day, end) if end else None,
        )
    return _make_break


@pytest.fixture
def make_context(rules):
    """Factory to create ValidationContext objects."""
    def _make_context(
        current: TimeEntry,
        history: list[TimeEntry] = None,
        breaks: list[BreakEntry] = None,
        **kwargs
    ) -> ValidationContext:
        kwargs.setdefault("rules", rules)
        return ValidationContext(
            current_entry=current,
            all_entries=history or [],
            breaks=breaks or [],
            **kwargs
        )
    return _make_context
