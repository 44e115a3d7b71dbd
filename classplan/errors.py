"""Error hierarchy for calendar editing and timetable storage.

"Nothing to do" situations (no calendar, no slots, no matching group) are not
errors and never raise; the classes below cover inputs that would otherwise
mix or lose data.
"""
from __future__ import annotations


class ClassPlanError(Exception):
    """Base exception for classplan domain errors."""


class CalendarDayFullError(ClassPlanError, ValueError):
    """A calendar day already holds the maximum number of events."""

    def __init__(self, day, limit: int) -> None:
        super().__init__(f"{day.isoformat()} already has {limit} events")
        self.day = day
        self.limit = limit


class MixedTimetableError(ClassPlanError, ValueError):
    """Rows from several school/year/semester triples were saved together."""


class AmbiguousStudentError(ClassPlanError, ValueError):
    """A student code lookup matched more than one student."""
