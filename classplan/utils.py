from __future__ import annotations

import json
import re
from datetime import date, timedelta
from typing import Iterable, Iterator


# Indexed with the Sunday-first weekday numbering used by timetable slots.
DAY_NAMES = ("일요일", "월요일", "화요일", "수요일", "목요일", "금요일", "토요일")

_NON_DIGITS = re.compile(r"\D")


def daterange(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def sunday_first_weekday(day: date) -> int:
    """Return the weekday of ``day`` with Sunday as 0 and Saturday as 6."""

    return (day.weekday() + 1) % 7


def day_name(day: date) -> str:
    return DAY_NAMES[sunday_first_weekday(day)]


def parse_grades(raw: str | None) -> frozenset[int]:
    """Parse the stored grade scope of a calendar event.

    The column holds a JSON array such as ``[1, 2]``; an empty or missing value
    means the event applies to every grade and is returned as an empty set.
    Older rows may hold a comma separated list, which is accepted as well.
    """

    if not raw:
        return frozenset()
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        payload = raw.split(",")
    if not isinstance(payload, list):
        payload = [payload]
    grades: set[int] = set()
    for item in payload:
        try:
            grades.add(int(str(item).strip()))
        except ValueError:
            continue
    return frozenset(grades)


def serialise_grades(grades: Iterable[int]) -> str | None:
    values = sorted({int(grade) for grade in grades})
    if not values:
        return None
    return json.dumps(values)


def digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def build_student_code(grade: int, class_number: int, student_number: int) -> str:
    """Five digit student code: grade, two digit class, two digit number."""

    return f"{int(grade)}{int(class_number):02d}{int(student_number):02d}"


def format_class_info(grade: int, class_number: int, subject: str) -> str:
    return f"{grade}{class_number:02d} {subject}"
