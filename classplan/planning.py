"""Common lesson plans shared by every section of a teacher/grade/subject.

A template holds one content line per session number inside an exam segment.
Sections rarely meet the same number of times, so a template only covers the
sessions every section has: the smallest of the per-section maxima.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from .domain import ClassSession, CommonPlanAnalysis, ExamSegment, LessonPlanTemplateRow


def analyze_common_plan_for_segment(
    sessions: Iterable[ClassSession], segment: ExamSegment | str
) -> CommonPlanAnalysis:
    """Return how many sessions of ``segment`` every section has in common.

    ``sessions`` must already be limited to one school, year, semester,
    teacher, grade and subject; the class number tells the sections apart.
    Marker rows and non-class days carry no session number and are ignored.
    A single section is enough for the plan to be usable.
    """

    target = ExamSegment.parse(segment)
    session_list = list(sessions)
    class_numbers = tuple(
        sorted({s.class_number for s in session_list if s.class_number is not None})
    )
    if not class_numbers:
        return CommonPlanAnalysis(False, None, class_numbers)

    max_by_class: dict[int, int] = {}
    for session in session_list:
        if session.class_number is None or session.session_number is None:
            continue
        if session.segment != target:
            continue
        current = max_by_class.get(session.class_number, 0)
        if session.session_number > current:
            max_by_class[session.class_number] = session.session_number

    if not max_by_class:
        return CommonPlanAnalysis(False, None, class_numbers)

    return CommonPlanAnalysis(True, min(max_by_class.values()), class_numbers)


def compute_min_sessions_by_segment(
    sessions: Iterable[ClassSession], segment: ExamSegment | str
) -> int | None:
    return analyze_common_plan_for_segment(sessions, segment).min_count


def apply_template_to_sessions(
    sessions: Sequence[ClassSession],
    segment: ExamSegment | str,
    template_rows: Iterable[LessonPlanTemplateRow],
    min_count: int,
    extra_content: Optional[str] = None,
) -> List[ClassSession]:
    """Return copies of ``sessions`` with the template content filled in.

    Sessions numbered up to ``min_count`` take the template row with the same
    index when one exists. Sessions beyond ``min_count`` take
    ``extra_content`` when it is given and keep their content otherwise.
    The input sessions are left untouched.
    """

    if min_count <= 0:
        return [replace(session) for session in sessions]

    target = ExamSegment.parse(segment)
    content_by_index: dict[int, str] = {}
    for row in template_rows:
        if ExamSegment.parse(row.segment) != target or row.session_index < 1:
            continue
        content_by_index[row.session_index] = row.content

    updated: List[ClassSession] = []
    for session in sessions:
        number = session.session_number
        if (
            session.class_number is None
            or session.segment != target
            or number is None
            or number <= 0
        ):
            updated.append(replace(session))
            continue

        if number <= min_count:
            content = content_by_index.get(number)
        else:
            content = extra_content or None
        if content is None:
            updated.append(replace(session))
        else:
            updated.append(replace(session, content=content))
    return updated
