"""Korean public holidays.

Holidays are the union of eight fixed-date national holidays, the lunar
holidays (설날 and 추석 three-day spans, 부처님 오신 날) and substitute
holidays: a holiday on a Sunday adds the following Monday, a holiday on a
Saturday adds the Monday two days later. Substitute dates are not checked
against other holidays.

Lunar dates come from a provider object exposing ``holidays_for(year)``. The
default provider is a lookup table covering 2020 to 2030; any other year has
no lunar holidays. A real lunar calendar computation can be plugged in through
the ``lunar_calendar`` argument without touching the substitute rules.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Protocol


@dataclass(frozen=True)
class LunarHoliday:
    month: int
    day: int
    name: str


class LunarCalendar(Protocol):
    def holidays_for(self, year: int) -> List[LunarHoliday]:  # pragma: no cover - interface
        ...


FIXED_HOLIDAYS: tuple[tuple[int, int, str], ...] = (
    (1, 1, "신정"),
    (3, 1, "삼일절"),
    (5, 5, "어린이날"),
    (6, 6, "현충일"),
    (8, 15, "광복절"),
    (10, 3, "개천절"),
    (10, 9, "한글날"),
    (12, 25, "크리스마스"),
)

# (month, day) for the eve, the day itself and the day after.
# The 2023, 2027 and 2028 rows follow the published KASI calendar; older
# copies of this table had them wrong, so keep them as they are.
SEOLLAL_DATES: dict[int, tuple[tuple[int, int], ...]] = {
    2020: ((1, 24), (1, 25), (1, 26)),
    2021: ((2, 11), (2, 12), (2, 13)),
    2022: ((1, 31), (2, 1), (2, 2)),
    2023: ((1, 21), (1, 22), (1, 23)),
    2024: ((2, 9), (2, 10), (2, 11)),
    2025: ((1, 28), (1, 29), (1, 30)),
    2026: ((2, 16), (2, 17), (2, 18)),
    2027: ((2, 6), (2, 7), (2, 8)),
    2028: ((1, 25), (1, 26), (1, 27)),
    2029: ((2, 12), (2, 13), (2, 14)),
    2030: ((2, 2), (2, 3), (2, 4)),
}

CHUSEOK_DATES: dict[int, tuple[tuple[int, int], ...]] = {
    2020: ((9, 30), (10, 1), (10, 2)),
    2021: ((9, 20), (9, 21), (9, 22)),
    2022: ((9, 9), (9, 10), (9, 11)),
    2023: ((9, 28), (9, 29), (9, 30)),
    2024: ((9, 16), (9, 17), (9, 18)),
    2025: ((10, 5), (10, 6), (10, 7)),
    2026: ((9, 24), (9, 25), (9, 26)),
    2027: ((9, 14), (9, 15), (9, 16)),
    2028: ((10, 2), (10, 3), (10, 4)),
    2029: ((9, 21), (9, 22), (9, 23)),
    2030: ((9, 11), (9, 12), (9, 13)),
}

BUDDHA_BIRTHDAY_DATES: dict[int, tuple[int, int]] = {
    2020: (4, 30),
    2021: (5, 19),
    2022: (5, 8),
    2023: (5, 27),
    2024: (5, 15),
    2025: (5, 5),
    2026: (5, 24),
    2027: (5, 13),
    2028: (5, 2),
    2029: (5, 20),
    2030: (5, 9),
}

SPAN_NAMES = {
    "seollal": ("설날 전날", "설날", "설날 다음날"),
    "chuseok": ("추석 전날", "추석", "추석 다음날"),
}


class TableLunarCalendar:
    """Lunar holidays read from the precomputed 2020-2030 tables."""

    SUPPORTED_YEARS = range(2020, 2031)

    def supports_year(self, year: int) -> bool:
        return year in self.SUPPORTED_YEARS

    def holidays_for(self, year: int) -> List[LunarHoliday]:
        holidays: List[LunarHoliday] = []
        for key, table in (("seollal", SEOLLAL_DATES), ("chuseok", CHUSEOK_DATES)):
            for (month, day), name in zip(table.get(year, ()), SPAN_NAMES[key]):
                holidays.append(LunarHoliday(month, day, name))
        buddha = BUDDHA_BIRTHDAY_DATES.get(year)
        if buddha is not None:
            holidays.append(LunarHoliday(buddha[0], buddha[1], "부처님 오신 날"))
        return holidays


DEFAULT_LUNAR_CALENDAR = TableLunarCalendar()


def substitute_holiday(day: date) -> date | None:
    """Return the substitute Monday for a weekend holiday, if any."""

    weekday = day.weekday()
    if weekday == 6:
        return day + timedelta(days=1)
    if weekday == 5:
        return day + timedelta(days=2)
    return None


def _named_holidays(
    year: int, lunar_calendar: Optional[LunarCalendar]
) -> List[tuple[date, str]]:
    calendar = lunar_calendar or DEFAULT_LUNAR_CALENDAR
    named = [(date(year, month, day), name) for month, day, name in FIXED_HOLIDAYS]
    named.extend(
        (date(year, lunar.month, lunar.day), lunar.name)
        for lunar in calendar.holidays_for(year)
    )
    return named


def holidays_for_year(
    year: int, lunar_calendar: Optional[LunarCalendar] = None
) -> set[date]:
    named = _named_holidays(year, lunar_calendar)
    holidays = {day for day, _ in named}
    for day, _ in named:
        substitute = substitute_holiday(day)
        if substitute is not None:
            holidays.add(substitute)
    return holidays


def is_public_holiday(day: date, lunar_calendar: Optional[LunarCalendar] = None) -> bool:
    return day in holidays_for_year(day.year, lunar_calendar)


def holiday_name(day: date, lunar_calendar: Optional[LunarCalendar] = None) -> str:
    for month, day_of_month, name in FIXED_HOLIDAYS:
        if (day.month, day.day) == (month, day_of_month):
            return name

    calendar = lunar_calendar or DEFAULT_LUNAR_CALENDAR
    for lunar in calendar.holidays_for(day.year):
        if (day.month, day.day) == (lunar.month, lunar.day):
            return lunar.name

    for holiday, name in _named_holidays(day.year, lunar_calendar):
        if substitute_holiday(holiday) == day:
            return f"{name} 대체휴일"

    return "공휴일"


def holidays_between(
    start: date, end: date, lunar_calendar: Optional[LunarCalendar] = None
) -> List[date]:
    """Return the public holidays between ``start`` and ``end`` inclusive, sorted."""

    found: set[date] = set()
    for year in range(start.year, end.year + 1):
        found.update(
            day for day in holidays_for_year(year, lunar_calendar) if start <= day <= end
        )
    return sorted(found)


def describe_holidays(
    days: Iterable[date], lunar_calendar: Optional[LunarCalendar] = None
) -> List[tuple[date, str]]:
    return [(day, holiday_name(day, lunar_calendar)) for day in sorted(days)]
