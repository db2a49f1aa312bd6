"""Hebrew lunar-calendar arithmetic on top of convertdate.

Month numbering follows convertdate: 1=Nisan .. 6=Elul, 7=Tishrei .. 12=Adar
(Adar I in a leap year), 13=Adar II. The year number changes on 1 Tishrei.
"""

from __future__ import annotations

from datetime import date

from convertdate import hebrew

from onahtrack.core.domain.models import LunarDate

TISHREI = 7
ELUL = 6
NISAN = 1
ADAR = 12
ADAR_II = 13

MONTH_NAMES = {
    1: "Nisan",
    2: "Iyyar",
    3: "Sivan",
    4: "Tammuz",
    5: "Av",
    6: "Elul",
    7: "Tishrei",
    8: "Cheshvan",
    9: "Kislev",
    10: "Tevet",
    11: "Shvat",
    12: "Adar",
    13: "Adar II",
}


def month_name(year: int, month: int) -> str:
    if month == ADAR and hebrew.leap(year):
        return "Adar I"
    return MONTH_NAMES[month]


def lunar_date(year: int, month: int, day: int) -> LunarDate:
    return LunarDate(year=year, month=month, day=day, month_name=month_name(year, month))


def from_civil(day: date) -> LunarDate:
    """Hebrew date whose daytime falls on the given civil date."""
    year, month, mday = hebrew.from_gregorian(day.year, day.month, day.day)
    return lunar_date(year, month, mday)


def to_civil(label: LunarDate) -> date:
    year, month, mday = hebrew.to_gregorian(label.year, label.month, label.day)
    return date(year, month, mday)


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == ELUL:
        return year + 1, TISHREI
    if month == ADAR:
        return (year, ADAR_II) if hebrew.leap(year) else (year, NISAN)
    if month == ADAR_II:
        return year, NISAN
    return year, month + 1


def add_months(label: LunarDate, months: int) -> LunarDate:
    """Advance by whole lunar months keeping the day number.

    A day that does not exist in the target month (30th of a 29-day month)
    rolls to the 1st of the month after it.
    """
    if months < 0:
        raise ValueError("months must be non-negative")
    year, month = label.year, label.month
    for _ in range(months):
        year, month = next_month(year, month)
    day = label.day
    if day > hebrew.month_length(year, month):
        year, month = next_month(year, month)
        day = 1
    return lunar_date(year, month, day)
