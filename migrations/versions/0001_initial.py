"""Initial classplan schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


EVENT_TYPES = (
    "'holiday','opening','closing','midterm','final','recess',"
    "'substitute','mocktest','custom','direct'"
)
SEGMENTS = "'before_first','between_first_second','after_second'"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    ]


def upgrade() -> None:
    op.create_table(
        "school",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_school_name", "school", ["name"])

    op.create_table(
        "calendar",
        sa.Column("id", sa.String(length=100), primary_key=True),
        sa.Column("school_id", sa.String(length=64), sa.ForeignKey("school.id"), nullable=False),
        sa.Column("school_name", sa.String(length=200)),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("saved_at", sa.DateTime()),
        *_timestamps(),
        sa.UniqueConstraint("school_id", "year", "semester", name="uq_calendar_school_term"),
        sa.CheckConstraint("semester IN (1,2)", name="chk_calendar_semester_valid"),
    )

    op.create_table(
        "calendar_entry",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("calendar_id", sa.String(length=100), sa.ForeignKey("calendar.id"), nullable=False),
        sa.Column("event_key", sa.String(length=100), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("grades", sa.Text()),
        sa.CheckConstraint(f"type IN ({EVENT_TYPES})", name="chk_calendar_entry_type_valid"),
    )
    op.create_index("ix_calendar_entry_calendar_id", "calendar_entry", ["calendar_id"])

    op.create_table(
        "teacher_schedule",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.String(length=100), nullable=False),
        sa.Column("teacher_name", sa.String(length=120), nullable=False),
        sa.Column("subject", sa.String(length=120), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=False),
        sa.Column("class_number", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="chk_teacher_schedule_weekday"),
        sa.CheckConstraint("period BETWEEN 1 AND 7", name="chk_teacher_schedule_period"),
    )
    op.create_index("ix_teacher_schedule_term", "teacher_schedule", ["school_id", "year", "semester"])

    op.create_table(
        "class_session",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.String(length=100), nullable=False),
        sa.Column("teacher_name", sa.String(length=120), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=False),
        sa.Column("class_number", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(length=120), nullable=False),
        sa.Column("session_number", sa.Integer()),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("class_info", sa.String(length=200), nullable=False),
        sa.Column("academic_event", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_before_first_test", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("segment", sa.String(length=30)),
        *_timestamps(),
        sa.CheckConstraint("period BETWEEN 0 AND 7", name="chk_class_session_period"),
        sa.CheckConstraint(
            f"segment IS NULL OR segment IN ({SEGMENTS})",
            name="chk_class_session_segment_valid",
        ),
    )
    op.create_index(
        "ix_class_session_group",
        "class_session",
        ["school_id", "year", "semester", "teacher_id", "grade", "class_number"],
    )

    op.create_table(
        "lesson_plan_template",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.String(length=100), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(length=120), nullable=False),
        sa.Column("segment", sa.String(length=30), nullable=False),
        sa.Column("session_index", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
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
        sa.CheckConstraint("session_index >= 1", name="chk_lesson_plan_template_index"),
        sa.CheckConstraint(f"segment IN ({SEGMENTS})", name="chk_lesson_plan_template_segment"),
    )

    op.create_table(
        "student_timetable",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=False),
        sa.Column("class_no", sa.Integer(), nullable=False),
        sa.Column("student_no", sa.Integer(), nullable=False),
        sa.Column("student_name", sa.String(length=120), nullable=False),
        sa.Column("student_code", sa.String(length=10), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(length=120), nullable=False),
        sa.Column("teacher_id", sa.String(length=100)),
        sa.Column("teacher_name", sa.String(length=120)),
        sa.Column("room", sa.String(length=120)),
        *_timestamps(),
        sa.UniqueConstraint(
            "school_id",
            "year",
            "semester",
            "student_code",
            "day_of_week",
            "period",
            name="uq_student_timetable_slot",
        ),
    )
    op.create_index("ix_student_timetable_student_code", "student_timetable", ["student_code"])


def downgrade() -> None:
    op.drop_index("ix_student_timetable_student_code", table_name="student_timetable")
    op.drop_table("student_timetable")
    op.drop_table("lesson_plan_template")
    op.drop_index("ix_class_session_group", table_name="class_session")
    op.drop_table("class_session")
    op.drop_index("ix_teacher_schedule_term", table_name="teacher_schedule")
    op.drop_table("teacher_schedule")
    op.drop_index("ix_calendar_entry_calendar_id", table_name="calendar_entry")
    op.drop_table("calendar_entry")
    op.drop_table("calendar")
    op.drop_index("ix_school_name", table_name="school")
    op.drop_table("school")
