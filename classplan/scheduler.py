from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .academic_calendar import (
    day_before,
    earliest_event_date,
    events_for_grade,
    latest_event_date,
    semester_date_window,
)
from .domain import (
    CLOSING_MARKER,
    FIRST_EXAM_MARKER,
    SECOND_EXAM_MARKER,
    AcademicCalendar,
    CalendarEvent,
    ClassScheduleSlot,
    ClassSession,
    ExamSegment,
)
from .utils import daterange, day_name, format_class_info, sunday_first_weekday


@dataclass(frozen=True)
class ExamBoundaries:
    """Key dates of a semester as seen by one grade."""

    first_exam: date | None = None
    second_exam: date | None = None
    opening: date | None = None
    closing: date | None = None

    @classmethod
    def for_grade(cls, events: Iterable[CalendarEvent], grade: int) -> "ExamBoundaries":
        scoped = events_for_grade(events, grade)
        return cls(
            first_exam=earliest_event_date(scoped, "midterm"),
            second_exam=earliest_event_date(scoped, "final"),
            opening=earliest_event_date(scoped, "opening"),
            closing=latest_event_date(scoped, "closing"),
        )

    def is_before_first(self, day: date) -> bool:
        return self.first_exam is not None and day < self.first_exam

    def segment_for(self, day: date) -> ExamSegment | None:
        if self.is_before_first(day):
            return ExamSegment.BEFORE_FIRST
        if (
            self.first_exam is not None
            and self.second_exam is not None
            and self.first_exam <= day < self.second_exam
        ):
            return ExamSegment.BETWEEN_FIRST_SECOND
        if self.second_exam is not None and day >= self.second_exam:
            if self.closing is None or day < self.closing:
                return ExamSegment.AFTER_SECOND
        return None


@dataclass
class SegmentCounters:
    """Running session numbers, one independent counter per segment."""

    values: dict[ExamSegment, int] = field(
        default_factory=lambda: {segment: 0 for segment in ExamSegment}
    )

    def advance(self, segment: ExamSegment) -> int:
        self.values[segment] += 1
        return self.values[segment]


def non_class_event(day_events: Sequence[CalendarEvent]) -> CalendarEvent | None:
    """Return the first event that cancels regular classes, if any."""

    for event in day_events:
        if event.cancels_class:
            return event
    return None


def generate_class_sessions(
    teacher_id: str,
    grade: int,
    class_number: int,
    school_id: str,
    year: int,
    semester: int,
    schedule_slots: Iterable[ClassScheduleSlot],
    calendar: Optional[AcademicCalendar],
) -> List[ClassSession]:
    """Derive the ordered class occurrences of one teacher/class for a semester.

    Every calendar day between the opening date (or the nominal semester start)
    and the day before the closing date (or the nominal semester end) is
    visited. Each weekly slot landing on a class day receives the running
    number of the exam segment the day belongs to; the number advances once
    per day, so several periods on the same day share it. Slots landing on a
    holiday, exam, recess, mock test or direct-entry day are still listed, with
    no number and the event name. Whole-day marker rows (period 0) flag the
    first and second exam starts and the closing ceremony.
    """

    class_slots = [
        slot
        for slot in schedule_slots
        if slot.teacher_id == teacher_id
        and slot.grade == grade
        and slot.class_number == class_number
    ]
    if not class_slots:
        return []

    subject = class_slots[0].subject
    teacher_name = class_slots[0].teacher_name
    class_info = format_class_info(grade, class_number, subject)

    events = list(calendar.events) if calendar is not None else []
    boundaries = ExamBoundaries.for_grade(events, grade)
    events_by_day: dict[date, list[CalendarEvent]] = {}
    for event in events_for_grade(events, grade):
        events_by_day.setdefault(event.date, []).append(event)

    nominal_start, nominal_end = semester_date_window(year, semester)
    window_start = boundaries.opening or nominal_start
    window_end = day_before(boundaries.closing) if boundaries.closing else nominal_end

    def make_session(
        day: date,
        period: int,
        *,
        number: int | None = None,
        event: str = "",
        segment: ExamSegment | None = None,
        before_first: bool = False,
    ) -> ClassSession:
        return ClassSession(
            session_number=number,
            date=day,
            day_of_week=day_name(day),
            period=period,
            class_info=class_info,
            academic_event=event,
            is_before_first_test=before_first,
            segment=segment,
            school_id=school_id,
            year=year,
            semester=semester,
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            grade=grade,
            class_number=class_number,
            subject=subject,
        )

    sessions: List[ClassSession] = []
    counters = SegmentCounters()

    for day in daterange(window_start, window_end):
        blocking = non_class_event(events_by_day.get(day, ()))
        segment = boundaries.segment_for(day)
        before_first = boundaries.is_before_first(day)

        if day == boundaries.first_exam:
            sessions.append(
                make_session(
                    day,
                    0,
                    event=FIRST_EXAM_MARKER,
                    segment=(
                        ExamSegment.BETWEEN_FIRST_SECOND
                        if boundaries.second_exam is not None
                        else None
                    ),
                )
            )
        if day == boundaries.second_exam:
            sessions.append(
                make_session(
                    day, 0, event=SECOND_EXAM_MARKER, segment=ExamSegment.AFTER_SECOND
                )
            )

        weekday = sunday_first_weekday(day)
        day_slots = [slot for slot in class_slots if slot.day_of_week == weekday]
        if not day_slots:
            continue

        if blocking is not None:
            for slot in day_slots:
                sessions.append(
                    make_session(
                        day,
                        slot.period,
                        event=blocking.name,
                        before_first=before_first,
                    )
                )
            continue

        number = counters.advance(segment) if segment is not None else None
        for slot in day_slots:
            sessions.append(
                make_session(
                    day,
                    slot.period,
                    number=number,
                    segment=segment,
                    before_first=before_first,
                )
            )

    if boundaries.closing is not None:
        sessions.append(
            make_session(
                boundaries.closing,
                0,
                event=CLOSING_MARKER,
                segment=ExamSegment.AFTER_SECOND,
            )
        )

    sessions.sort(key=lambda session: (session.date, session.period))
    return sessions


def group_schedule_slots(
    slots: Iterable[ClassScheduleSlot],
) -> dict[tuple[str, int, int], List[ClassScheduleSlot]]:
    """Group weekly slots by (teacher, grade, class number), keeping input order."""

    groups: dict[tuple[str, int, int], List[ClassScheduleSlot]] = {}
    for slot in slots:
        groups.setdefault((slot.teacher_id, slot.grade, slot.class_number), []).append(slot)
    return groups
