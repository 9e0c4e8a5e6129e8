from datetime import date

import pytest

from app.services.schedule import expand_weekday_dates


def test_mondays_in_january_2024():
    dates = expand_weekday_dates(date(2024, 1, 1), date(2024, 1, 31), "Monday")

    assert dates == [date(2024, 1, d) for d in (1, 8, 15, 22, 29)]


def test_range_is_inclusive_at_both_ends():
    dates = expand_weekday_dates(date(2024, 1, 2), date(2024, 1, 16), "tuesday")

    assert dates == [date(2024, 1, 2), date(2024, 1, 9), date(2024, 1, 16)]


def test_day_name_is_case_insensitive():
    upper = expand_weekday_dates(date(2024, 2, 1), date(2024, 2, 29), "FRIDAY")
    mixed = expand_weekday_dates(date(2024, 2, 1), date(2024, 2, 29), " Friday ")

    assert upper == mixed == [date(2024, 2, d) for d in (2, 9, 16, 23)]


def test_no_matching_day_in_short_range():
    assert expand_weekday_dates(date(2024, 1, 2), date(2024, 1, 4), "sunday") == []


def test_reversed_range_is_empty():
    assert expand_weekday_dates(date(2024, 1, 31), date(2024, 1, 1), "monday") == []


def test_unknown_day_raises():
    with pytest.raises(ValueError):
        expand_weekday_dates(date(2024, 1, 1), date(2024, 1, 31), "Funday")
