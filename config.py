import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    _db_user = os.environ.get("DATABASE_USER", "classplan")
    _db_password = os.environ.get("DATABASE_PASSWORD", "classplan")
    _db_host = os.environ.get("DATABASE_HOST", "localhost")
    _db_port = os.environ.get("DATABASE_PORT", "3306")
    _db_name = os.environ.get("DATABASE_NAME", "classplan")

    _default_uri = (
        f"mysql+pymysql://{_db_user}:{_db_password}@{_db_host}:{_db_port}/{_db_name}"
    )

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_uri)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.environ.get("DB_ECHO", "false").lower() == "true"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Rows per INSERT batch when replacing a semester's student timetables.
    STUDENT_TIMETABLE_BATCH_SIZE = int(os.environ.get("STUDENT_TIMETABLE_BATCH_SIZE", "500"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
