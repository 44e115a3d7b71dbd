import unittest
from datetime import date

from classplan import create_app, db, storage
from classplan.domain import (
    AcademicCalendar,
    CalendarEvent,
    ClassScheduleSlot,
    ClassSession,
    ExamSegment,
    StudentTimetableRow,
)
from classplan.errors import AmbiguousStudentError, MixedTimetableError
from classplan.models import ClassSessionRecord, LessonPlanTemplate, StudentTimetable
from config import TestConfig


class DatabaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.app_context.pop()


class SchoolStorageTestCase(DatabaseTestCase):
    def test_save_school_upserts(self) -> None:
        storage.save_school("S1", "한빛고등학교")
        storage.save_school("S1", "한빛여자고등학교")

        schools = storage.get_schools()

        self.assertEqual([(s.id, s.name) for s in schools], [("S1", "한빛여자고등학교")])

    def test_search_by_name(self) -> None:
        storage.save_school("S1", "Hanbit High School")
        storage.save_school("S2", "Saebit Middle School")
        storage.save_school("S3", "Hanbit Girls High School")

        found = storage.search_schools_by_name("hanbit")

        self.assertEqual([s.id for s in found], ["S3", "S1"])
        self.assertEqual(len(storage.search_schools_by_name("school", limit=2)), 2)
        self.assertEqual(storage.search_schools_by_name("   "), [])


class CalendarStorageTestCase(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        storage.save_school("S1", "한빛고등학교")

    def _calendar(self, events) -> AcademicCalendar:
        return AcademicCalendar(
            school_id="S1", school_name="한빛고등학교", year=2025, semester=1, events=events
        )

    def test_round_trip_keeps_grades(self) -> None:
        events = [
            CalendarEvent("e1", date(2025, 3, 4), "opening", "개학식"),
            CalendarEvent("e2", date(2025, 4, 22), "midterm", "1차 지필", frozenset({2, 3})),
        ]

        saved = storage.save_calendar(self._calendar(events))

        self.assertEqual(saved.id, "S1_2025_1")
        self.assertIsNotNone(saved.saved_at)
        loaded = storage.get_calendar_for("S1", 2025, 1)
        self.assertEqual(loaded.events, events)
        self.assertEqual(storage.get_calendar_by_id("S1_2025_1").school_name, "한빛고등학교")

    def test_save_replaces_events(self) -> None:
        storage.save_calendar(
            self._calendar([CalendarEvent("e1", date(2025, 3, 4), "opening", "개학식")])
        )
        replacement = [CalendarEvent("e9", date(2025, 7, 18), "closing", "방학식")]

        storage.save_calendar(self._calendar(replacement))

        calendars = storage.get_calendars_by_school("S1")
        self.assertEqual(len(calendars), 1)
        self.assertEqual(calendars[0].events, replacement)

    def test_missing_calendar(self) -> None:
        self.assertIsNone(storage.get_calendar_for("S1", 2025, 2))
        self.assertIsNone(storage.get_calendar_by_id("S1_2025_2"))
        self.assertEqual(storage.get_calendars_by_school("S9"), [])


class TeacherScheduleStorageTestCase(DatabaseTestCase):
    def _slot(self, teacher_id, grade, class_number, day_of_week, period) -> ClassScheduleSlot:
        return ClassScheduleSlot(teacher_id, "교사", "수학", grade, class_number, day_of_week, period)

    def test_save_and_order(self) -> None:
        slots = [
            self._slot("T2", 1, 1, 1, 1),
            self._slot("T1", 2, 3, 2, 4),
            self._slot("T1", 2, 1, 5, 2),
            self._slot("T1", 2, 1, 1, 6),
        ]

        self.assertEqual(storage.save_teacher_schedules("S1", 2025, 1, slots), 4)

        loaded = storage.get_teacher_schedules("S1", 2025, 1)
        self.assertEqual(
            loaded,
            [slots[3], slots[2], slots[1], slots[0]],
        )

    def test_save_replaces_the_term(self) -> None:
        storage.save_teacher_schedules("S1", 2025, 1, [self._slot("T1", 1, 1, 1, 1)])
        storage.save_teacher_schedules("S1", 2025, 2, [self._slot("T1", 1, 1, 1, 1)])

        storage.save_teacher_schedules("S1", 2025, 1, [self._slot("T3", 1, 1, 2, 2)])

        self.assertEqual(
            [s.teacher_id for s in storage.get_teacher_schedules("S1", 2025, 1)], ["T3"]
        )
        self.assertEqual(len(storage.get_teacher_schedules("S1", 2025, 2)), 1)

    def test_empty_save_keeps_existing_rows(self) -> None:
        storage.save_teacher_schedules("S1", 2025, 1, [self._slot("T1", 1, 1, 1, 1)])

        self.assertEqual(storage.save_teacher_schedules("S1", 2025, 1, []), 0)
        self.assertEqual(len(storage.get_teacher_schedules("S1", 2025, 1)), 1)


class ClassSessionStorageTestCase(DatabaseTestCase):
    def _session(self, day, period, number, segment=ExamSegment.BEFORE_FIRST) -> ClassSession:
        return ClassSession(
            session_number=number,
            date=day,
            day_of_week="월요일",
            period=period,
            class_info="201 수학",
            segment=segment,
            is_before_first_test=segment is ExamSegment.BEFORE_FIRST,
        )

    def _save(self, class_number, sessions) -> int:
        return storage.save_class_sessions(
            "S1", 2025, 1, "T1", "교사", 2, class_number, "수학", sessions
        )

    def test_group_replace(self) -> None:
        self._save(1, [self._session(date(2025, 3, 3), 1, 1), self._session(date(2025, 3, 4), 2, 2)])
        self._save(2, [self._session(date(2025, 3, 3), 3, 1)])

        self._save(1, [self._session(date(2025, 3, 10), 1, 1)])

        first = storage.get_class_sessions("S1", 2025, 1, "T1", 2, 1, "수학")
        self.assertEqual([s.date for s in first], [date(2025, 3, 10)])
        self.assertEqual(first[0].class_number, 1)
        self.assertEqual(first[0].teacher_name, "교사")
        self.assertEqual(len(storage.get_class_sessions("S1", 2025, 1, "T1", 2, 2, "수학")), 1)

    def test_sessions_across_sections(self) -> None:
        self._save(2, [self._session(date(2025, 3, 3), 3, 1)])
        self._save(1, [self._session(date(2025, 3, 3), 1, 1), self._session(date(2025, 3, 4), 2, 2)])

        sessions = storage.get_class_sessions_by_teacher_grade_subject("S1", 2025, 1, "T1", 2, "수학")

        self.assertEqual(
            [(s.date, s.period, s.class_number) for s in sessions],
            [(date(2025, 3, 3), 1, 1), (date(2025, 3, 3), 3, 2), (date(2025, 3, 4), 2, 1)],
        )

    def test_segment_and_marker_round_trip(self) -> None:
        marker = ClassSession(
            session_number=None,
            date=date(2025, 4, 22),
            day_of_week="화요일",
            period=0,
            class_info="201 수학",
            academic_event="1차 지필 시작",
            segment=ExamSegment.BETWEEN_FIRST_SECOND,
        )
        self._save(1, [marker])

        loaded = storage.get_class_sessions("S1", 2025, 1, "T1", 2, 1, "수학")[0]

        self.assertIsNone(loaded.session_number)
        self.assertEqual(loaded.segment, ExamSegment.BETWEEN_FIRST_SECOND)
        self.assertEqual(loaded.academic_event, "1차 지필 시작")
        self.assertEqual(loaded.period, 0)

    def test_legacy_rows_read_segment_from_flag(self) -> None:
        for day, flag in ((date(2025, 3, 3), True), (date(2025, 5, 5), False)):
            db.session.add(
                ClassSessionRecord(
                    school_id="S1",
                    year=2025,
                    semester=1,
                    teacher_id="T1",
                    teacher_name="교사",
                    grade=2,
                    class_number=1,
                    subject="수학",
                    session_number=1,
                    day=day,
                    day_of_week="월요일",
                    period=1,
                    class_info="201 수학",
                    is_before_first_test=flag,
                    segment=None,
                )
            )
        db.session.commit()

        sessions = storage.get_class_sessions("S1", 2025, 1, "T1", 2, 1, "수학")

        self.assertEqual(
            [s.segment for s in sessions],
            [ExamSegment.BEFORE_FIRST, ExamSegment.BETWEEN_FIRST_SECOND],
        )

    def test_unnumbered_rows_do_not_read_segment_from_flag(self) -> None:
        recess = self._session(date(2025, 6, 4), 1, None, segment=None)
        recess.academic_event = "재량휴업일"
        self._save(1, [recess])

        loaded = storage.get_class_sessions("S1", 2025, 1, "T1", 2, 1, "수학")[0]
        self._save(1, [loaded])

        record = db.session.query(ClassSessionRecord).one()
        self.assertIsNone(loaded.segment)
        self.assertIsNone(record.segment)
        self.assertFalse(record.is_before_first_test)


class LessonPlanTemplateStorageTestCase(DatabaseTestCase):
    key = ("S1", 2025, 1, "T1", 2, "수학")

    def test_upsert_and_order(self) -> None:
        storage.save_lesson_plan_templates(*self.key, "before_first", [(2, "둘"), (1, "하나")])
        storage.save_lesson_plan_templates(*self.key, "before_first", [(2, "둘 수정"), (3, "셋")])

        rows = storage.get_lesson_plan_templates(*self.key, ExamSegment.BEFORE_FIRST)

        self.assertEqual(
            [(row.session_index, row.content) for row in rows],
            [(1, "하나"), (2, "둘 수정"), (3, "셋")],
        )
        self.assertTrue(all(row.segment is ExamSegment.BEFORE_FIRST for row in rows))

    def test_empty_rows_delete_only_that_segment(self) -> None:
        storage.save_lesson_plan_templates(*self.key, "before_first", [(1, "하나")])
        storage.save_lesson_plan_templates(*self.key, "after_second", [(1, "마무리")])

        storage.save_lesson_plan_templates(*self.key, "before_first", [])

        self.assertEqual(storage.get_lesson_plan_templates(*self.key, "before_first"), [])
        self.assertEqual(len(storage.get_lesson_plan_templates(*self.key, "after_second")), 1)

    def test_invalid_index_rolls_back(self) -> None:
        with self.assertRaises(ValueError):
            storage.save_lesson_plan_templates(*self.key, "before_first", [(1, "하나"), (0, "영")])

        self.assertEqual(db.session.query(LessonPlanTemplate).count(), 0)

    def test_unknown_segment(self) -> None:
        with self.assertRaises(ValueError):
            storage.get_lesson_plan_templates(*self.key, "after_third")


def timetable_row(
    grade, class_number, student_number, name, day_of_week=1, period=1, subject="국어", **extra
):
    values = dict(
        school_id="S1",
        year=2025,
        semester=1,
        grade=grade,
        class_number=class_number,
        student_number=str(student_number),
        student_name=name,
        day_of_week=day_of_week,
        period=period,
        subject=subject,
    )
    values.update(extra)
    return StudentTimetableRow(**values)


class StudentTimetableStorageTestCase(DatabaseTestCase):
    def test_save_skips_invalid_and_duplicate_rows(self) -> None:
        rows = [
            timetable_row(3, 6, 1, "김학생"),
            timetable_row(3, 6, 1, "김학생", subject="중복"),
            timetable_row(3, 6, 1, "김학생", period=2),
            timetable_row(3, 6, 1, "김학생", period=3, subject="  "),
            timetable_row(3, 6, "", "번호없음"),
            timetable_row(3, 0, 2, "반없음"),
        ]

        with self.assertLogs(self.app.logger, level="WARNING"):
            saved = storage.save_student_timetables(rows)

        self.assertEqual(saved, 2)
        timetable = storage.get_student_timetable_by_student_code("S1", 2025, 1, "30601")
        self.assertEqual([(row.period, row.subject) for row in timetable], [(1, "국어"), (2, "국어")])
        self.assertEqual(timetable[0].student_code, "30601")

    def test_save_replaces_the_term(self) -> None:
        storage.save_student_timetables([timetable_row(1, 1, 1, "가"), timetable_row(1, 1, 2, "나")])

        storage.save_student_timetables([timetable_row(1, 1, 3, "다")])

        self.assertEqual(db.session.query(StudentTimetable).count(), 1)

    def test_mixed_terms_are_rejected(self) -> None:
        rows = [timetable_row(1, 1, 1, "가"), timetable_row(1, 1, 2, "나", semester=2)]

        with self.assertRaises(MixedTimetableError):
            storage.save_student_timetables(rows)

    def test_no_valid_rows(self) -> None:
        storage.save_student_timetables([timetable_row(1, 1, 1, "가")])

        with self.assertRaises(ValueError):
            storage.save_student_timetables([timetable_row(1, 1, "", "번호없음")])

        self.assertEqual(db.session.query(StudentTimetable).count(), 1)

    def test_batches(self) -> None:
        self.app.config["STUDENT_TIMETABLE_BATCH_SIZE"] = 2
        rows = [timetable_row(2, 1, number, f"학생{number}") for number in range(1, 6)]

        self.assertEqual(storage.save_student_timetables(rows), 5)
        self.assertEqual(db.session.query(StudentTimetable).count(), 5)

    def test_lookup_by_short_code(self) -> None:
        storage.save_student_timetables([timetable_row(2, 3, 5, "나", period=4)])

        timetable = storage.get_student_timetable_by_student_code("S1", 2025, 1, "305")

        self.assertEqual([row.student_name for row in timetable], ["나"])

    def test_short_code_matching_two_students(self) -> None:
        storage.save_student_timetables([timetable_row(1, 3, 5, "가"), timetable_row(2, 3, 5, "나")])

        with self.assertRaises(AmbiguousStudentError):
            storage.get_student_timetable_by_student_code("S1", 2025, 1, "0305")

        timetable = storage.get_student_timetable_by_student_code("S1", 2025, 1, "20305")
        self.assertEqual([row.student_name for row in timetable], ["나"])

    def test_full_code_falls_back_to_grade_class_number(self) -> None:
        db.session.add(
            StudentTimetable(
                school_id="S1",
                year=2025,
                semester=1,
                grade=1,
                class_no=2,
                student_no=7,
                student_name="가",
                student_code="legacy",
                day_of_week=1,
                period=1,
                subject="국어",
            )
        )
        db.session.commit()

        timetable = storage.get_student_timetable_by_student_code("S1", 2025, 1, "학번 10207")

        self.assertEqual(len(timetable), 1)

    def test_unknown_or_blank_code(self) -> None:
        self.assertEqual(storage.get_student_timetable_by_student_code("S1", 2025, 1, "99999"), [])
        self.assertEqual(storage.get_student_timetable_by_student_code("S1", 2025, 1, ""), [])


if __name__ == "__main__":
    unittest.main()
