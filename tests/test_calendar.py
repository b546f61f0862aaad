import pytest

from sim.time import add_months, months_between, next_month, scale_to_months
from time_model import Calendar, SEASONS, next_season, season_for_month


def test_month_arithmetic():
    assert add_months(1, 1, 0) == (1, 1)
    assert add_months(1, 11, 3) == (2, 2)
    assert next_month(1799, 12) == (1800, 1)
    assert months_between((1, 1), (2, 2)) == 13
    assert months_between((5, 6), (4, 6)) == -12
    with pytest.raises(ValueError):
        add_months(1, 0, 1)
    with pytest.raises(ValueError):
        add_months(1, 1, -1)


def test_scale_to_months():
    assert scale_to_months("month") == 1
    assert scale_to_months("year") == 12
    with pytest.raises(ValueError):
        scale_to_months("week")


def test_season_cycle_is_four_steps():
    season = "spring"
    seen = []
    for _ in range(4):
        season = next_season(season)
        seen.append(season)
    assert seen == ["summer", "autumn", "winter", "spring"]
    assert set(seen) == set(SEASONS)
    with pytest.raises(ValueError):
        next_season("monsoon")


def test_season_bands():
    assert [season_for_month(m) for m in (1, 3, 6, 9, 12)] == [
        "winter", "spring", "summer", "autumn", "winter",
    ]


def test_calendar_rollover():
    cal = Calendar(year=10, month=11)
    assert not cal.advance_month()
    assert cal.season == "winter"
    assert cal.advance_month()
    assert (cal.year, cal.month) == (11, 1)
