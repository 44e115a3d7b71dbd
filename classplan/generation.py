from __future__ import annotations

from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from . import db, storage
from .domain import ClassSession, ExamSegment
from .planning import analyze_common_plan_for_segment, apply_template_to_sessions
from .scheduler import generate_class_sessions, group_schedule_slots


def process_all_class_sessions(school_id: str, year: int, semester: int) -> int:
    """Regenerate the sessions of every teacher/class group of a school term.

    Each group is written in its own transaction. A group whose write fails is
    rolled back, logged and skipped; the others are still processed. Returns
    the number of sessions that were saved.
    """

    slots = storage.get_teacher_schedules(school_id, year, semester)
    if not slots:
        current_app.logger.warning(
            "No teacher schedules for %s %s/%s; nothing to generate", school_id, year, semester
        )
        return 0

    calendar = storage.get_calendar_for(school_id, year, semester)
    if calendar is None:
        current_app.logger.warning(
            "No academic calendar for %s %s/%s; nothing to generate", school_id, year, semester
        )
        return 0

    groups = group_schedule_slots(slots)
    current_app.logger.info(
        "Generating class sessions for %s group(s) of %s %s/%s",
        len(groups),
        school_id,
        year,
        semester,
    )

    total = 0
    failed = 0
    for (teacher_id, grade, class_number), group_slots in groups.items():
        sessions = generate_class_sessions(
            teacher_id,
            grade,
            class_number,
            school_id,
            year,
            semester,
            group_slots,
            calendar,
        )
        if not sessions:
            continue

        first = group_slots[0]
        try:
            saved = storage.save_class_sessions(
                school_id,
                year,
                semester,
                teacher_id,
                first.teacher_name,
                grade,
                class_number,
                first.subject,
                sessions,
            )
        except SQLAlchemyError:
            db.session.rollback()
            failed += 1
            current_app.logger.error(
                "Failed to save sessions of %s grade %s class %s",
                teacher_id,
                grade,
                class_number,
                exc_info=True,
            )
            continue
        total += saved

    if failed:
        current_app.logger.warning("%s group(s) could not be saved", failed)
    current_app.logger.info("Saved %s class session(s) for %s", total, school_id)
    return total


def apply_lesson_template_to_class_sessions(
    school_id: str,
    year: int,
    semester: int,
    teacher_id: str,
    grade: int,
    subject: str,
    segment: ExamSegment | str,
    extra_content: Optional[str] = None,
) -> int:
    """Copy the teacher's common template for ``segment`` onto every section.

    Returns the number of sections rewritten, or 0 when the sections share no
    numbered session in the segment or no template rows are stored.
    """

    target = ExamSegment.parse(segment)
    if target is None:
        raise ValueError("A segment is required to apply a lesson plan template.")

    sessions = storage.get_class_sessions_by_teacher_grade_subject(
        school_id, year, semester, teacher_id, grade, subject
    )
    analysis = analyze_common_plan_for_segment(sessions, target)
    if not analysis.can_use_common_plan or not analysis.min_count:
        current_app.logger.warning(
            "No common %s sessions for %s grade %s %s", target.value, teacher_id, grade, subject
        )
        return 0

    template_rows = storage.get_lesson_plan_templates(
        school_id, year, semester, teacher_id, grade, subject, target
    )
    if not template_rows:
        current_app.logger.warning(
            "No %s template for %s grade %s %s", target.value, teacher_id, grade, subject
        )
        return 0

    updated = apply_template_to_sessions(
        sessions, target, template_rows, analysis.min_count, extra_content
    )

    by_class: dict[int, List[ClassSession]] = {}
    for session in updated:
        if session.class_number is None:
            continue
        by_class.setdefault(session.class_number, []).append(session)

    written = 0
    for class_number in analysis.class_numbers:
        class_sessions = by_class.get(class_number)
        if not class_sessions:
            continue
        storage.save_class_sessions(
            school_id,
            year,
            semester,
            teacher_id,
            class_sessions[0].teacher_name or "",
            grade,
            class_number,
            subject,
            class_sessions,
        )
        written += 1

    current_app.logger.info(
        "Applied %s template (%s session(s)) to %s section(s) of %s grade %s %s",
        target.value,
        analysis.min_count,
        written,
        teacher_id,
        grade,
        subject,
    )
    return written
