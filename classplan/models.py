from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import db
from .domain import (
    EVENT_TYPE_CHOICES,
    CalendarEvent,
    ClassScheduleSlot,
    ClassSession,
    ExamSegment,
    LessonPlanTemplateRow,
    StudentTimetableRow,
    resolve_segment,
)
from .utils import parse_grades, serialise_grades


_EVENT_TYPE_SQL = ",".join(f"'{choice}'" for choice in EVENT_TYPE_CHOICES)
_SEGMENT_SQL = ",".join(f"'{segment.value}'" for segment in ExamSegment)


class TimeStampedModel:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class School(db.Model, TimeStampedModel):
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    calendars: Mapped[List["Calendar"]] = relationship(
        back_populates="school", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"School<{self.id} {self.name}>"


class Calendar(db.Model, TimeStampedModel):
    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    school_id: Mapped[str] = mapped_column(ForeignKey("school.id"), nullable=False)
    school_name: Mapped[Optional[str]] = mapped_column(String(200))
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    saved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    school: Mapped[School] = relationship(back_populates="calendars")
    entries: Mapped[List["CalendarEntry"]] = relationship(
        back_populates="calendar",
        cascade="all, delete-orphan",
        order_by="CalendarEntry.day",
    )

    __table_args__ = (
        UniqueConstraint("school_id", "year", "semester", name="uq_calendar_school_term"),
        CheckConstraint("semester IN (1,2)", name="chk_calendar_semester_valid"),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Calendar<{self.id}>"


class CalendarEntry(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    calendar_id: Mapped[str] = mapped_column(ForeignKey("calendar.id"), nullable=False, index=True)
    event_key: Mapped[str] = mapped_column(String(100), nullable=False)
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    grades: Mapped[Optional[str]] = mapped_column(Text)

    calendar: Mapped[Calendar] = relationship(back_populates="entries")

    __table_args__ = (
        CheckConstraint(f"type IN ({_EVENT_TYPE_SQL})", name="chk_calendar_entry_type_valid"),
    )

    @classmethod
    def from_event(cls, event: CalendarEvent) -> "CalendarEntry":
        return cls(
            event_key=event.id,
            day=event.date,
            type=event.type,
            name=event.name,
            grades=serialise_grades(event.grades),
        )

    def as_event(self) -> CalendarEvent:
        return CalendarEvent(
            id=self.event_key,
            date=self.day,
            type=self.type,
            name=self.name or "",
            grades=parse_grades(self.grades),
        )


class TeacherSchedule(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(100), nullable=False)
    teacher_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    class_number: Mapped[int] = mapped_column(Integer, nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_teacher_schedule_weekday"),
        CheckConstraint("period BETWEEN 1 AND 7", name="chk_teacher_schedule_period"),
        Index("ix_teacher_schedule_term", "school_id", "year", "semester"),
    )

    def as_slot(self) -> ClassScheduleSlot:
        return ClassScheduleSlot(
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name,
            subject=self.subject,
            grade=self.grade,
            class_number=self.class_number,
            day_of_week=self.day_of_week,
            period=self.period,
        )


class ClassSessionRecord(db.Model, TimeStampedModel):
    __tablename__ = "class_session"

    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(100), nullable=False)
    teacher_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    class_number: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    session_number: Mapped[Optional[int]] = mapped_column(Integer)
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    class_info: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    academic_event: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_before_first_test: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    segment: Mapped[Optional[str]] = mapped_column(String(30))

    __table_args__ = (
        CheckConstraint("period BETWEEN 0 AND 7", name="chk_class_session_period"),
        CheckConstraint(
            f"segment IS NULL OR segment IN ({_SEGMENT_SQL})",
            name="chk_class_session_segment_valid",
        ),
        Index(
            "ix_class_session_group",
            "school_id",
            "year",
            "semester",
            "teacher_id",
            "grade",
            "class_number",
        ),
    )

    def as_session(self) -> ClassSession:
        return ClassSession(
            id=self.id,
            session_number=self.session_number,
            date=self.day,
            day_of_week=self.day_of_week,
            period=self.period,
            class_info=self.class_info,
            academic_event=self.academic_event or "",
            content=self.content or "",
            is_before_first_test=bool(self.is_before_first_test),
            segment=resolve_segment(
                self.segment, self.is_before_first_test, self.session_number
            ),
            school_id=self.school_id,
            year=self.year,
            semester=self.semester,
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name,
            grade=self.grade,
            class_number=self.class_number,
            subject=self.subject,
        )


class LessonPlanTemplate(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    segment: Mapped[str] = mapped_column(String(30), nullable=False)
    session_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        UniqueConstraint(
            "school_id",
            "year",
            "semester",
            "teacher_id",
            "grade",
            "subject",
            "segment",
            "session_index",
            name="uq_lesson_plan_template_key",
        ),
        CheckConstraint("session_index >= 1", name="chk_lesson_plan_template_index"),
        CheckConstraint(f"segment IN ({_SEGMENT_SQL})", name="chk_lesson_plan_template_segment"),
    )

    def as_row(self) -> LessonPlanTemplateRow:
        return LessonPlanTemplateRow(
            segment=ExamSegment(self.segment),
            session_index=self.session_index,
            content=self.content or "",
        )


class StudentTimetable(db.Model, TimeStampedModel):
    id: Mapped[int] = mapped_column(primary_key=True)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    class_no: Mapped[int] = mapped_column(Integer, nullable=False)
    student_no: Mapped[int] = mapped_column(Integer, nullable=False)
    student_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    student_code: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    teacher_id: Mapped[Optional[str]] = mapped_column(String(100))
    teacher_name: Mapped[Optional[str]] = mapped_column(String(120))
    room: Mapped[Optional[str]] = mapped_column(String(120))

    __table_args__ = (
        UniqueConstraint(
            "school_id",
            "year",
            "semester",
            "student_code",
            "day_of_week",
            "period",
            name="uq_student_timetable_slot",
        ),
    )

    @property
    def student_key(self) -> tuple[int, int, int, str]:
        return (self.grade, self.class_no, self.student_no, self.student_name)

    def as_row(self) -> StudentTimetableRow:
        return StudentTimetableRow(
            school_id=self.school_id,
            year=self.year,
            semester=self.semester,
            grade=self.grade,
            class_number=self.class_no,
            student_number=str(self.student_no),
            student_name=self.student_name,
            student_code=self.student_code,
            day_of_week=self.day_of_week,
            period=self.period,
            subject=self.subject,
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name,
            room=self.room,
        )
