"""Plain data types shared by the calendar, scheduler and planning modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


EVENT_TYPE_CHOICES = (
    "holiday",
    "midterm",
    "final",
    "recess",
    "custom",
    "direct",
    "substitute",
    "opening",
    "closing",
    "mocktest",
)

# Event types that cancel regular classes for the grades they apply to.
# "direct" is a free-text entry but is read as a day without regular class.
NON_CLASS_EVENT_TYPES = frozenset(
    {"holiday", "midterm", "final", "recess", "substitute", "mocktest", "direct"}
)

EVENT_TYPE_LABELS = {
    "holiday": "공휴일",
    "midterm": "1차 지필",
    "final": "2차 지필",
    "recess": "재량휴업일",
    "custom": "일반 일정",
    "direct": "직접 입력",
    "substitute": "대체공휴일",
    "opening": "개학식",
    "closing": "방학식",
    "mocktest": "모의고사",
}

MAX_EVENTS_PER_DAY = 5

FIRST_EXAM_MARKER = "1차 지필 시작"
SECOND_EXAM_MARKER = "2차 지필 시작"
CLOSING_MARKER = "방학식"


class ExamSegment(str, Enum):
    BEFORE_FIRST = "before_first"
    BETWEEN_FIRST_SECOND = "between_first_second"
    AFTER_SECOND = "after_second"

    @classmethod
    def parse(cls, value: "ExamSegment | str | None") -> Optional["ExamSegment"]:
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        return cls(str(value).strip())


def resolve_segment(
    segment: ExamSegment | str | None,
    is_before_first_test: bool | None,
    session_number: int | None = None,
) -> ExamSegment | None:
    """Return the segment of a stored session, reading legacy rows too.

    Rows written before the segment column existed only carry the
    ``is_before_first_test`` flag. For numbered rows, ``True`` maps to
    ``before_first`` and ``False`` to ``between_first_second``;
    ``after_second`` cannot be recovered from the flag and is never inferred.
    Unnumbered rows (markers and non-class days) keep their stored segment.
    """

    parsed = ExamSegment.parse(segment)
    if parsed is not None or session_number is None:
        return parsed
    if is_before_first_test is True:
        return ExamSegment.BEFORE_FIRST
    if is_before_first_test is False:
        return ExamSegment.BETWEEN_FIRST_SECOND
    return None


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    date: date
    type: str
    name: str
    grades: frozenset[int] = frozenset()

    def applies_to_grade(self, grade: int) -> bool:
        if not self.grades:
            return True
        return grade in self.grades

    @property
    def cancels_class(self) -> bool:
        return self.type in NON_CLASS_EVENT_TYPES


@dataclass
class AcademicCalendar:
    school_id: str
    year: int
    semester: int
    events: list[CalendarEvent] = field(default_factory=list)
    school_name: str | None = None
    id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    saved_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id:
            self.id = f"{self.school_id}_{self.year}_{self.semester}"


@dataclass(frozen=True)
class ClassScheduleSlot:
    teacher_id: str
    teacher_name: str
    subject: str
    grade: int
    class_number: int
    day_of_week: int
    period: int


@dataclass
class ClassSession:
    session_number: int | None
    date: date
    day_of_week: str
    period: int
    class_info: str
    academic_event: str = ""
    content: str = ""
    is_before_first_test: bool = False
    segment: ExamSegment | None = None

    id: int | None = None
    school_id: str | None = None
    year: int | None = None
    semester: int | None = None
    teacher_id: str | None = None
    teacher_name: str | None = None
    grade: int | None = None
    class_number: int | None = None
    subject: str | None = None


@dataclass(frozen=True)
class LessonPlanTemplateRow:
    segment: ExamSegment
    session_index: int
    content: str


@dataclass(frozen=True)
class CommonPlanAnalysis:
    can_use_common_plan: bool
    min_count: int | None
    class_numbers: tuple[int, ...] = ()


@dataclass(frozen=True)
class StudentTimetableRow:
    school_id: str
    year: int
    semester: int
    grade: int
    class_number: int
    student_number: str
    student_name: str
    day_of_week: int
    period: int
    subject: str
    student_code: str | None = None
    teacher_id: str | None = None
    teacher_name: str | None = None
    room: str | None = None
