from datetime import date

from . import storage
from .academic_calendar import add_event, add_period_events, initial_semester_events
from .domain import AcademicCalendar, ClassScheduleSlot
from .models import School


SAMPLE_SCHOOL_ID = "S7010001"
SAMPLE_SCHOOL_NAME = "한빛고등학교"


def seed_data() -> bool:
    if School.query.count():
        return False

    year = date.today().year
    semester = 1

    storage.save_school(SAMPLE_SCHOOL_ID, SAMPLE_SCHOOL_NAME)

    events = initial_semester_events(year, semester)
    events = add_event(events, date(year, 3, 2), "opening")
    events = add_period_events(events, date(year, 4, 21), date(year, 4, 24), "midterm")
    events = add_event(events, date(year, 6, 4), "mocktest", grades=(3,))
    events = add_period_events(events, date(year, 6, 30), date(year, 7, 3), "final")
    events = add_event(events, date(year, 7, 18), "closing")
    storage.save_calendar(
        AcademicCalendar(
            school_id=SAMPLE_SCHOOL_ID,
            school_name=SAMPLE_SCHOOL_NAME,
            year=year,
            semester=semester,
            events=events,
        )
    )

    weekly_slots = [
        ("T001", "김하늘", "국어", 1, 1, 1, 2),
        ("T001", "김하늘", "국어", 1, 1, 3, 4),
        ("T001", "김하늘", "국어", 1, 2, 2, 1),
        ("T001", "김하늘", "국어", 1, 2, 4, 3),
        ("T002", "이바다", "수학", 3, 1, 1, 1),
        ("T002", "이바다", "수학", 3, 1, 2, 5),
        ("T002", "이바다", "수학", 3, 1, 5, 2),
    ]
    storage.save_teacher_schedules(
        SAMPLE_SCHOOL_ID,
        year,
        semester,
        [
            ClassScheduleSlot(
                teacher_id=teacher_id,
                teacher_name=teacher_name,
                subject=subject,
                grade=grade,
                class_number=class_number,
                day_of_week=day_of_week,
                period=period,
            )
            for teacher_id, teacher_name, subject, grade, class_number, day_of_week, period in weekly_slots
        ],
    )
    return True
