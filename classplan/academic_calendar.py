"""Academic calendar events: grade scoping, lookups and editor operations.

An event list is never edited in place. Every operation below returns a new
list, and a day's events are changed by replacing that day's full list.
"""
from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import Iterable, List, Sequence

from .domain import (
    EVENT_TYPE_CHOICES,
    EVENT_TYPE_LABELS,
    MAX_EVENTS_PER_DAY,
    CalendarEvent,
)
from .errors import CalendarDayFullError
from .holidays import LunarCalendar, holiday_name, holidays_between
from .utils import daterange


def calendar_id(school_id: str, year: int, semester: int) -> str:
    return f"{school_id}_{year}_{semester}"


def semester_date_window(year: int, semester: int) -> tuple[date, date]:
    if semester == 1:
        return date(year, 2, 1), date(year, 8, 31)
    if semester == 2:
        return date(year, 8, 1), date(year + 1, 1, 31)
    raise ValueError(f"Unknown semester: {semester!r}")


def new_event_id(day: date) -> str:
    return f"event-{uuid.uuid4().hex[:12]}-{day.isoformat()}"


def default_event_name(event_type: str) -> str:
    if event_type == "direct":
        return ""
    if event_type in EVENT_TYPE_LABELS:
        return EVENT_TYPE_LABELS[event_type]
    return "일정"


def events_for_grade(events: Iterable[CalendarEvent], grade: int) -> List[CalendarEvent]:
    return [event for event in events if event.applies_to_grade(grade)]


def events_on(
    events: Iterable[CalendarEvent], day: date, grade: int | None = None
) -> List[CalendarEvent]:
    return [
        event
        for event in events
        if event.date == day and (grade is None or event.applies_to_grade(grade))
    ]


def earliest_event_date(
    events: Iterable[CalendarEvent], event_type: str, grade: int | None = None
) -> date | None:
    dates = [
        event.date
        for event in events
        if event.type == event_type and (grade is None or event.applies_to_grade(grade))
    ]
    return min(dates) if dates else None


def latest_event_date(
    events: Iterable[CalendarEvent], event_type: str, grade: int | None = None
) -> date | None:
    dates = [
        event.date
        for event in events
        if event.type == event_type and (grade is None or event.applies_to_grade(grade))
    ]
    return max(dates) if dates else None


def find_test_dates(events: Sequence[CalendarEvent]) -> tuple[date | None, date | None]:
    """Return the first midterm and first final dates across every grade."""

    return (
        earliest_event_date(events, "midterm"),
        earliest_event_date(events, "final"),
    )


def build_holiday_events(
    year: int, semester: int, lunar_calendar: LunarCalendar | None = None
) -> List[CalendarEvent]:
    start, end = semester_date_window(year, semester)
    return [
        CalendarEvent(
            id=f"holiday-{day.isoformat()}",
            date=day,
            type="holiday",
            name=holiday_name(day, lunar_calendar),
        )
        for day in holidays_between(start, end, lunar_calendar)
    ]


def carry_over_events(previous_events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    """Return the August events of the first semester.

    The second semester window starts on August 1st, so a new second-semester
    calendar starts from whatever the first semester already holds for August.
    """

    return [event for event in previous_events if event.date.month == 8]


def initial_semester_events(
    year: int,
    semester: int,
    previous_events: Iterable[CalendarEvent] = (),
    lunar_calendar: LunarCalendar | None = None,
) -> List[CalendarEvent]:
    events = carry_over_events(previous_events) if semester == 2 else []
    taken = {event.date for event in events}
    events.extend(
        event
        for event in build_holiday_events(year, semester, lunar_calendar)
        if event.date not in taken
    )
    return events


def _validate_type(event_type: str) -> None:
    if event_type not in EVENT_TYPE_CHOICES:
        raise ValueError(f"Unknown event type: {event_type!r}")


def _resolve_name(event_type: str, name: str) -> str:
    resolved = (name or "").strip() or default_event_name(event_type)
    if not resolved:
        raise ValueError("A direct calendar entry needs a name.")
    return resolved


def add_event(
    events: Sequence[CalendarEvent],
    day: date,
    event_type: str,
    name: str = "",
    grades: Iterable[int] = (),
) -> List[CalendarEvent]:
    _validate_type(event_type)
    resolved = _resolve_name(event_type, name)
    if len(events_on(events, day)) >= MAX_EVENTS_PER_DAY:
        raise CalendarDayFullError(day, MAX_EVENTS_PER_DAY)
    event = CalendarEvent(
        id=new_event_id(day),
        date=day,
        type=event_type,
        name=resolved,
        grades=frozenset(grades),
    )
    return [*events, event]


def add_period_events(
    events: Sequence[CalendarEvent],
    start: date,
    end: date,
    event_type: str,
    name: str = "",
    grades: Iterable[int] = (),
) -> List[CalendarEvent]:
    """Add one event per weekday between ``start`` and ``end``.

    Events of the same type and name already inside the range are replaced.
    Weekends are skipped, and so are days that already hold the maximum number
    of events.
    """

    _validate_type(event_type)
    if start > end:
        raise ValueError("The period start must not be after its end.")
    resolved = _resolve_name(event_type, name)
    scope = frozenset(grades)

    kept = [
        event
        for event in events
        if not (
            event.type == event_type
            and event.name == resolved
            and start <= event.date <= end
        )
    ]
    added: List[CalendarEvent] = []
    for day in daterange(start, end):
        if day.weekday() >= 5:
            continue
        if len(events_on(kept, day)) >= MAX_EVENTS_PER_DAY:
            continue
        added.append(
            CalendarEvent(
                id=new_event_id(day),
                date=day,
                type=event_type,
                name=resolved,
                grades=scope,
            )
        )
    if not added:
        raise ValueError("No day in the selected period can take a new event.")
    return kept + added


def replace_day_events(
    events: Sequence[CalendarEvent], day: date, new_events: Sequence[CalendarEvent]
) -> List[CalendarEvent]:
    if len(new_events) > MAX_EVENTS_PER_DAY:
        raise CalendarDayFullError(day, MAX_EVENTS_PER_DAY)
    for event in new_events:
        _validate_type(event.type)
        if event.date != day:
            raise ValueError(
                f"Event {event.id} is dated {event.date.isoformat()}, not {day.isoformat()}."
            )
    return [event for event in events if event.date != day] + list(new_events)


def day_before(day: date) -> date:
    return day - timedelta(days=1)
