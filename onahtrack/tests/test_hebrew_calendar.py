from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from onahtrack.core.domain.errors import TemporalInvariantError
from onahtrack.infra.astronomy import hebrew
from onahtrack.infra.astronomy.calendar import HebrewSolarCalendar
from onahtrack.tests.support import JERUSALEM, local


def test_from_civil_known_dates() -> None:
    assert str(hebrew.from_civil(date(2025, 1, 1))) == "1 Tevet 5785"
    assert str(hebrew.from_civil(date(2024, 10, 3))) == "1 Tishrei 5785"
    assert str(hebrew.from_civil(date(2025, 3, 14))) == "14 Adar 5785"


def test_leap_year_adar_names() -> None:
    assert hebrew.month_name(5784, 12) == "Adar I"
    assert hebrew.month_name(5784, 13) == "Adar II"
    assert hebrew.month_name(5785, 12) == "Adar"


def test_elul_advances_into_next_year() -> None:
    result = hebrew.add_months(hebrew.lunar_date(5784, 6, 1), 1)

    assert (result.year, result.month, result.day) == (5785, 7, 1)
    assert hebrew.to_civil(result) == date(2024, 10, 3)


def test_adar_advances_to_adar_ii_in_leap_year() -> None:
    result = hebrew.add_months(hebrew.lunar_date(5784, 12, 14), 1)

    assert (result.year, result.month, result.month_name) == (5784, 13, "Adar II")


def test_adar_advances_to_nisan_in_common_year() -> None:
    result = hebrew.add_months(hebrew.lunar_date(5785, 12, 14), 1)

    assert (result.year, result.month, result.day) == (5785, 1, 14)
    assert hebrew.to_civil(result) == date(2025, 4, 12)


def test_day_missing_from_target_month_rolls_forward() -> None:
    # 30 Kislev 5785 -> Tevet has 29 days -> 1 Shvat.
    result = hebrew.add_months(hebrew.lunar_date(5785, 9, 30), 1)

    assert (result.month, result.day) == (11, 1)
    assert hebrew.to_civil(result) == date(2025, 1, 30)


@pytest.mark.filterwarnings("error::DeprecationWarning")
def test_month_advance_keeps_thirtieth_day_without_warnings() -> None:
    result = hebrew.add_months(hebrew.lunar_date(5785, 8, 30), 1)

    assert (result.month, result.day) == (9, 30)


def test_add_zero_months_is_identity() -> None:
    label = hebrew.lunar_date(5785, 10, 5)
    assert hebrew.add_months(label, 0) == label


def test_negative_months_rejected() -> None:
    with pytest.raises(ValueError):
        hebrew.add_months(hebrew.lunar_date(5785, 10, 5), -1)


def test_label_switches_at_sunset(calendar: HebrewSolarCalendar) -> None:
    assert str(calendar.calendar_label(local(2025, 1, 1, 17, 59), JERUSALEM)) == "1 Tevet 5785"
    assert str(calendar.calendar_label(local(2025, 1, 1, 18, 0), JERUSALEM)) == "2 Tevet 5785"
    assert str(calendar.calendar_label(local(2025, 1, 2, 3, 0), JERUSALEM)) == "2 Tevet 5785"


def test_label_uses_location_timezone(calendar: HebrewSolarCalendar) -> None:
    # 16:30 UTC is 18:30 in Jerusalem (winter), already after sunset.
    instant = datetime(2025, 1, 1, 16, 30, tzinfo=timezone.utc)
    assert str(calendar.calendar_label(instant, JERUSALEM)) == "2 Tevet 5785"


def test_label_rejects_naive_instant(calendar: HebrewSolarCalendar) -> None:
    with pytest.raises(TemporalInvariantError):
        calendar.calendar_label(datetime(2025, 1, 1, 12, 0), JERUSALEM)
