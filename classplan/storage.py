"""Database access for schools, calendars, timetables, sessions and templates.

Every write runs in one transaction: it is committed on success and rolled
back before the error propagates otherwise. Lookups that find nothing return
``None`` or an empty list.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence

from flask import current_app
from sqlalchemy import delete, select

from . import db
from .domain import (
    AcademicCalendar,
    ClassScheduleSlot,
    ClassSession,
    ExamSegment,
    LessonPlanTemplateRow,
    StudentTimetableRow,
)
from .errors import AmbiguousStudentError, MixedTimetableError
from .models import (
    Calendar,
    CalendarEntry,
    ClassSessionRecord,
    LessonPlanTemplate,
    School,
    StudentTimetable,
    TeacherSchedule,
)
from .utils import build_student_code, digits_only


@contextmanager
def write_scope() -> Iterator:
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


# --------------------------------------------------------------------------
# Schools
# --------------------------------------------------------------------------


def get_schools() -> List[School]:
    return list(db.session.scalars(select(School).order_by(School.name)))


def search_schools_by_name(keyword: str, limit: int = 10) -> List[School]:
    trimmed = (keyword or "").strip()
    if not trimmed:
        return []
    statement = (
        select(School)
        .where(School.name.ilike(f"%{trimmed}%"))
        .order_by(School.name)
        .limit(limit)
    )
    return list(db.session.scalars(statement))


def save_school(school_id: str, name: str) -> School:
    with write_scope() as session:
        school = session.get(School, school_id)
        if school is None:
            school = School(id=school_id, name=name)
            session.add(school)
        else:
            school.name = name
    return school


# --------------------------------------------------------------------------
# Calendars
# --------------------------------------------------------------------------


def _calendar_from_model(model: Calendar) -> AcademicCalendar:
    return AcademicCalendar(
        id=model.id,
        school_id=model.school_id,
        school_name=model.school_name,
        year=model.year,
        semester=model.semester,
        events=[entry.as_event() for entry in model.entries],
        created_at=model.created_at,
        updated_at=model.updated_at,
        saved_at=model.saved_at,
    )


def get_calendars_by_school(school_id: str) -> List[AcademicCalendar]:
    statement = (
        select(Calendar)
        .where(Calendar.school_id == school_id)
        .order_by(Calendar.year.desc(), Calendar.semester.desc())
    )
    return [_calendar_from_model(model) for model in db.session.scalars(statement)]


def get_calendar_by_id(calendar_id: str) -> Optional[AcademicCalendar]:
    model = db.session.get(Calendar, calendar_id)
    return _calendar_from_model(model) if model is not None else None


def get_calendar_for(school_id: str, year: int, semester: int) -> Optional[AcademicCalendar]:
    statement = select(Calendar).where(
        Calendar.school_id == school_id,
        Calendar.year == year,
        Calendar.semester == semester,
    )
    model = db.session.scalars(statement).first()
    return _calendar_from_model(model) if model is not None else None


def save_calendar(calendar: AcademicCalendar) -> AcademicCalendar:
    """Insert or replace the calendar of a school term, events included."""

    now = datetime.utcnow()
    with write_scope() as session:
        model = session.scalars(
            select(Calendar).where(
                Calendar.school_id == calendar.school_id,
                Calendar.year == calendar.year,
                Calendar.semester == calendar.semester,
            )
        ).first()
        if model is None:
            model = Calendar(
                id=calendar.id,
                school_id=calendar.school_id,
                year=calendar.year,
                semester=calendar.semester,
            )
            session.add(model)
        model.school_name = calendar.school_name
        model.saved_at = now
        model.entries = [CalendarEntry.from_event(event) for event in calendar.events]
    return _calendar_from_model(model)


# --------------------------------------------------------------------------
# Teacher timetables
# --------------------------------------------------------------------------


def save_teacher_schedules(
    school_id: str, year: int, semester: int, slots: Sequence[ClassScheduleSlot]
) -> int:
    """Replace the weekly slots of every teacher for a school term."""

    if not slots:
        current_app.logger.warning(
            "No teacher schedules to save for %s/%s/%s", school_id, year, semester
        )
        return 0

    with write_scope() as session:
        session.execute(
            delete(TeacherSchedule).where(
                TeacherSchedule.school_id == school_id,
                TeacherSchedule.year == year,
                TeacherSchedule.semester == semester,
            )
        )
        session.add_all(
            TeacherSchedule(
                school_id=school_id,
                year=year,
                semester=semester,
                teacher_id=slot.teacher_id,
                teacher_name=slot.teacher_name,
                subject=slot.subject,
                grade=slot.grade,
                class_number=slot.class_number,
                day_of_week=slot.day_of_week,
                period=slot.period,
            )
            for slot in slots
        )
    return len(slots)


def get_teacher_schedules(school_id: str, year: int, semester: int) -> List[ClassScheduleSlot]:
    statement = (
        select(TeacherSchedule)
        .where(
            TeacherSchedule.school_id == school_id,
            TeacherSchedule.year == year,
            TeacherSchedule.semester == semester,
        )
        .order_by(
            TeacherSchedule.teacher_id,
            TeacherSchedule.grade,
            TeacherSchedule.class_number,
            TeacherSchedule.day_of_week,
            TeacherSchedule.period,
        )
    )
    return [row.as_slot() for row in db.session.scalars(statement)]


# --------------------------------------------------------------------------
# Class sessions
# --------------------------------------------------------------------------


def save_class_sessions(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    teacher_name: str,
    grade: int,
    class_number: int,
    subject: str,
    sessions: Sequence[ClassSession],
) -> int:
    """Replace every stored session of one teacher/grade/class group."""

    if not sessions:
        current_app.logger.warning(
            "No class sessions to save for %s grade %s class %s",
            teacher_id,
            grade,
            class_number,
        )
        return 0

    with write_scope() as session:
        session.execute(
            delete(ClassSessionRecord).where(
                ClassSessionRecord.school_id == school_id,
                ClassSessionRecord.year == year,
                ClassSessionRecord.semester == semester,
                ClassSessionRecord.teacher_id == teacher_id,
                ClassSessionRecord.grade == grade,
                ClassSessionRecord.class_number == class_number,
            )
        )
        session.add_all(
            ClassSessionRecord(
                school_id=school_id,
                year=year,
                semester=semester,
                teacher_id=teacher_id,
                teacher_name=teacher_name,
                grade=grade,
                class_number=class_number,
                subject=subject,
                session_number=item.session_number,
                day=item.date,
                day_of_week=item.day_of_week,
                period=item.period,
                class_info=item.class_info,
                academic_event=item.academic_event or "",
                content=item.content or "",
                is_before_first_test=bool(item.is_before_first_test),
                segment=item.segment.value if item.segment is not None else None,
            )
            for item in sessions
        )
    return len(sessions)


def get_class_sessions(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    class_number: int,
    subject: str,
) -> List[ClassSession]:
    statement = (
        select(ClassSessionRecord)
        .where(
            ClassSessionRecord.school_id == school_id,
            ClassSessionRecord.year == year,
            ClassSessionRecord.semester == semester,
            ClassSessionRecord.teacher_id == teacher_id,
            ClassSessionRecord.grade == grade,
            ClassSessionRecord.class_number == class_number,
            ClassSessionRecord.subject == subject,
        )
        .order_by(ClassSessionRecord.day, ClassSessionRecord.period)
    )
    return [row.as_session() for row in db.session.scalars(statement)]


def get_class_sessions_by_teacher_grade_subject(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    subject: str,
) -> List[ClassSession]:
    statement = (
        select(ClassSessionRecord)
        .where(
            ClassSessionRecord.school_id == school_id,
            ClassSessionRecord.year == year,
            ClassSessionRecord.semester == semester,
            ClassSessionRecord.teacher_id == teacher_id,
            ClassSessionRecord.grade == grade,
            ClassSessionRecord.subject == subject,
        )
        .order_by(
            ClassSessionRecord.day,
            ClassSessionRecord.period,
            ClassSessionRecord.class_number,
        )
    )
    return [row.as_session() for row in db.session.scalars(statement)]


# --------------------------------------------------------------------------
# Lesson plan templates
# --------------------------------------------------------------------------


def _template_filter(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    subject: str,
    segment: ExamSegment,
) -> tuple:
    return (
        LessonPlanTemplate.school_id == school_id,
        LessonPlanTemplate.year == year,
        LessonPlanTemplate.semester == semester,
        LessonPlanTemplate.teacher_id == teacher_id,
        LessonPlanTemplate.grade == grade,
        LessonPlanTemplate.subject == subject,
        LessonPlanTemplate.segment == segment.value,
    )


def get_lesson_plan_templates(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    subject: str,
    segment: ExamSegment | str,
) -> List[LessonPlanTemplateRow]:
    target = ExamSegment.parse(segment)
    statement = (
        select(LessonPlanTemplate)
        .where(*_template_filter(school_id, year, semester, teacher_id, grade, subject, target))
        .order_by(LessonPlanTemplate.session_index)
    )
    return [row.as_row() for row in db.session.scalars(statement)]


def save_lesson_plan_templates(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    subject: str,
    segment: ExamSegment | str,
    rows: Iterable[tuple[int, str]],
) -> int:
    """Upsert ``(session_index, content)`` rows of one segment's template.

    An empty ``rows`` removes the whole template of the segment.
    """

    target = ExamSegment.parse(segment)
    pairs = list(rows)
    key = _template_filter(school_id, year, semester, teacher_id, grade, subject, target)

    with write_scope() as session:
        if not pairs:
            session.execute(delete(LessonPlanTemplate).where(*key))
            return 0

        existing = {
            row.session_index: row
            for row in session.scalars(select(LessonPlanTemplate).where(*key))
        }
        for session_index, content in pairs:
            if session_index < 1:
                raise ValueError(f"Template index must be 1 or more, got {session_index}.")
            row = existing.get(session_index)
            if row is None:
                row = LessonPlanTemplate(
                    school_id=school_id,
                    year=year,
                    semester=semester,
                    teacher_id=teacher_id,
                    grade=grade,
                    subject=subject,
                    segment=target.value,
                    session_index=session_index,
                )
                session.add(row)
                existing[session_index] = row
            row.content = content
    return len(pairs)


# --------------------------------------------------------------------------
# Student timetables
# --------------------------------------------------------------------------


def _as_int(value: object) -> int:
    digits = digits_only(str(value if value is not None else ""))
    return int(digits) if digits else 0


def save_student_timetables(rows: Sequence[StudentTimetableRow]) -> int:
    """Replace the student timetables of one school term.

    Rows must all belong to the same school, year and semester. Rows without a
    usable grade, class or student number are skipped with a warning, rows
    without a subject are dropped, and duplicates of the same student slot
    keep their first occurrence.
    """

    if not rows:
        current_app.logger.warning("No student timetables to save")
        return 0

    first = rows[0]
    term = (first.school_id, first.year, first.semester)
    for row in rows:
        if (row.school_id, row.year, row.semester) != term:
            raise MixedTimetableError(
                "Student timetables from several school terms were saved together: "
                f"{term} and {(row.school_id, row.year, row.semester)}"
            )

    unique: dict[tuple, StudentTimetable] = {}
    invalid: list[StudentTimetableRow] = []
    for row in rows:
        grade = _as_int(row.grade)
        class_no = _as_int(row.class_number)
        student_no = _as_int(row.student_number)
        if not grade or not class_no or not student_no:
            invalid.append(row)
            continue
        subject = (row.subject or "").strip()
        if not subject:
            continue

        student_code = build_student_code(grade, class_no, student_no)
        key = (*term, student_code, row.day_of_week, row.period)
        if key in unique:
            continue
        unique[key] = StudentTimetable(
            school_id=row.school_id,
            year=row.year,
            semester=row.semester,
            grade=grade,
            class_no=class_no,
            student_no=student_no,
            student_name=row.student_name,
            student_code=student_code,
            day_of_week=row.day_of_week,
            period=row.period,
            subject=subject,
            teacher_id=row.teacher_id,
            teacher_name=row.teacher_name,
            room=row.room,
        )

    if not unique:
        sample = ", ".join(f"{row.student_name}({row.student_number})" for row in invalid[:5])
        raise ValueError(
            "No student timetable row can be saved; check the grade, class and "
            f"student numbers. Examples: {sample or '-'}"
        )
    if invalid:
        current_app.logger.warning(
            "Skipped %s student timetable row(s) with an invalid grade/class/number",
            len(invalid),
        )

    batch_size = int(current_app.config.get("STUDENT_TIMETABLE_BATCH_SIZE", 500))
    payload = list(unique.values())
    with write_scope() as session:
        session.execute(
            delete(StudentTimetable).where(
                StudentTimetable.school_id == term[0],
                StudentTimetable.year == term[1],
                StudentTimetable.semester == term[2],
            )
        )
        for start in range(0, len(payload), batch_size):
            session.add_all(payload[start : start + batch_size])
            session.flush()

    current_app.logger.info("Inserted %s student timetable row(s)", len(payload))
    return len(payload)


def _ensure_single_student(rows: Sequence[StudentTimetable], full_code: bool) -> None:
    if len({row.student_key for row in rows}) == 1:
        return
    if full_code:
        raise AmbiguousStudentError(
            "The lookup matched several students; search again with the "
            "five digit student code (for example 30601)."
        )
    raise AmbiguousStudentError(
        "A student code without its grade matches several students; use the "
        "five digit student code (for example 30601)."
    )


def get_student_timetable_by_student_code(
    school_id: str, year: int, semester: int, student_code: str
) -> List[StudentTimetableRow]:
    """Return the weekly timetable of the student identified by ``student_code``.

    Five digit codes read as grade, class and number (``30601``). Shorter
    codes only give class and number; they are accepted as long as a single
    student matches. Results spanning several students raise
    :class:`AmbiguousStudentError` instead of mixing their timetables.
    """

    digits = digits_only((student_code or "").strip())
    if not digits:
        return []

    has_grade = len(digits) >= 5
    if has_grade:
        code = digits[-5:]
        grade: int | None = int(code[0])
        class_no = int(code[1:3])
        student_no = int(code[3:5])
    else:
        code = digits.zfill(3)
        grade = None
        class_no = int(code[:-2])
        student_no = int(code[-2:])

    if not class_no or not student_no or (has_grade and not grade):
        return []

    term = (
        StudentTimetable.school_id == school_id,
        StudentTimetable.year == year,
        StudentTimetable.semester == semester,
    )
    order = (StudentTimetable.day_of_week, StudentTimetable.period)

    if has_grade:
        exact_code = build_student_code(grade, class_no, student_no)
        rows = list(
            db.session.scalars(
                select(StudentTimetable)
                .where(*term, StudentTimetable.student_code == exact_code)
                .order_by(*order)
            )
        )
        if not rows:
            rows = list(
                db.session.scalars(
                    select(StudentTimetable)
                    .where(
                        *term,
                        StudentTimetable.grade == grade,
                        StudentTimetable.class_no == class_no,
                        StudentTimetable.student_no == student_no,
                    )
                    .order_by(*order)
                )
            )
    else:
        rows = list(
            db.session.scalars(
                select(StudentTimetable)
                .where(
                    *term,
                    StudentTimetable.class_no == class_no,
                    StudentTimetable.student_no == student_no,
                )
                .order_by(StudentTimetable.grade, *order)
            )
        )

    if not rows:
        return []
    _ensure_single_student(rows, has_grade)
    return [row.as_row() for row in rows]
