"""Seasons and the month-based calendar."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from sim.time import next_month

SPRING = "spring"
SUMMER = "summer"
AUTUMN = "autumn"
WINTER = "winter"

# Cyclic order used by the kingdom's yearly season step
SEASONS: Tuple[str, ...] = (SPRING, SUMMER, AUTUMN, WINTER)

# Fraction of a year per tick
MONTH = 1 / 12
YEAR = 1.0


def next_season(season: str) -> str:
    """Return the season following ``season`` in the fixed 4-step cycle."""
    if season not in SEASONS:
        raise ValueError(f"unknown season {season!r}")
    return SEASONS[(SEASONS.index(season) + 1) % len(SEASONS)]


def season_for_month(month: int) -> str:
    """Calendar bands: Mar-May spring, Jun-Aug summer, Sep-Nov autumn, else winter."""
    if 3 <= month <= 5:
        return SPRING
    if 6 <= month <= 8:
        return SUMMER
    if 9 <= month <= 11:
        return AUTUMN
    return WINTER


@dataclass
class Calendar:
    year: int = 1
    month: int = 1

    def advance_month(self) -> bool:
        """Advance one month. Returns ``True`` when a new year starts."""
        self.year, self.month = next_month(self.year, self.month)
        return self.month == 1

    @property
    def season(self) -> str:
        return season_for_month(self.month)
