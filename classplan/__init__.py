import click
from flask import Flask
from flask.cli import with_appcontext
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from config import Config


db = SQLAlchemy()
migrate = Migrate()


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    from . import models  # noqa: F401  # Ensure models registered for migrations

    with app.app_context():
        db.create_all()

    _register_commands(app)
    return app


def _register_commands(app: Flask) -> None:
    @app.cli.command("seed")
    @with_appcontext
    def seed() -> None:
        """Seed a sample school, calendar and timetable for development."""
        from .seed import seed_data

        if seed_data():
            click.echo("Database seeded with sample data.")
        else:
            click.echo("Sample data already present.")

    @app.cli.command("process-sessions")
    @click.argument("school_id")
    @click.argument("year", type=int)
    @click.argument("semester", type=click.IntRange(1, 2))
    @with_appcontext
    def process_sessions(school_id: str, year: int, semester: int) -> None:
        """Regenerate every class session of a school term."""
        from .generation import process_all_class_sessions

        total = process_all_class_sessions(school_id, year, semester)
        click.echo(f"{total} session(s) generated.")

    @app.cli.command("apply-template")
    @click.argument("school_id")
    @click.argument("year", type=int)
    @click.argument("semester", type=click.IntRange(1, 2))
    @click.argument("teacher_id")
    @click.argument("grade", type=click.IntRange(1, 3))
    @click.argument("subject")
    @click.argument(
        "segment",
        type=click.Choice(["before_first", "between_first_second", "after_second"]),
    )
    @click.option("--extra", "extra_content", default=None, help="Content for sessions beyond the common count.")
    @with_appcontext
    def apply_template(
        school_id: str,
        year: int,
        semester: int,
        teacher_id: str,
        grade: int,
        subject: str,
        segment: str,
        extra_content: str | None,
    ) -> None:
        """Copy a lesson plan template onto every section of a teacher."""
        from .generation import apply_lesson_template_to_class_sessions

        updated = apply_lesson_template_to_class_sessions(
            school_id,
            year,
            semester,
            teacher_id,
            grade,
            subject,
            segment,
            extra_content=extra_content,
        )
        click.echo(f"{updated} class section(s) updated.")

    @app.cli.command("holidays")
    @click.argument("year", type=int)
    def list_holidays(year: int) -> None:
        """Print the public holidays of YEAR."""
        from .holidays import DEFAULT_LUNAR_CALENDAR, describe_holidays, holidays_for_year

        if not DEFAULT_LUNAR_CALENDAR.supports_year(year):
            click.echo(
                f"Lunar holidays are only known for "
                f"{DEFAULT_LUNAR_CALENDAR.SUPPORTED_YEARS.start}-"
                f"{DEFAULT_LUNAR_CALENDAR.SUPPORTED_YEARS.stop - 1}.",
                err=True,
            )
        for day, name in describe_holidays(holidays_for_year(year)):
            click.echo(f"{day.isoformat()}  {name}")
