"""Social class definitions and per-class weights.

Every class of the kingdom's population eats, pays taxes, draws a salary
and grows at its own rate.  The numbers live in one registry so the
kingdom orchestrator and the economy engine read the same table instead
of keeping private copies.

The kingdom's own yearly tick and the economy engine use two different
food tables (``kingdom_food`` and ``economy_food``); both are kept
because each feeds a different balance path.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class SocialClass(Enum):
    """Population classes; the value is the matching field on the population record."""

    NOBLES = "nobles"
    MERCHANTS = "merchants"
    SOLDIERS = "soldiers"
    CLERGY = "clergy"
    PEASANTS = "peasants"
    ARTISANS = "artisans"
    SCHOLARS = "scholars"


@dataclass(frozen=True)
class ClassProfile:
    """Collection of numeric weights for one social class."""

    # food per head and year
    kingdom_food: float
    economy_food: float
    # taxation and upkeep
    tax_value: float
    salary: float
    # demography
    growth_weight: float
    start_share: float
    start_minimum: int
    # scoring
    score_weight: float


# ---------------------------------------------------------------------------
# Default registry
# ---------------------------------------------------------------------------


DEFAULT_CLASSES: Dict[SocialClass, ClassProfile] = {
    SocialClass.NOBLES: ClassProfile(
        kingdom_food=12.0, economy_food=10.0, tax_value=15.0, salary=10.0,
        growth_weight=0.5, start_share=0.005, start_minimum=3, score_weight=150.0,
    ),
    SocialClass.MERCHANTS: ClassProfile(
        kingdom_food=6.0, economy_food=5.0, tax_value=3.0, salary=0.0,
        growth_weight=0.8, start_share=0.03, start_minimum=10, score_weight=75.0,
    ),
    SocialClass.SOLDIERS: ClassProfile(
        kingdom_food=4.0, economy_food=3.0, tax_value=0.0, salary=0.0,
        growth_weight=0.3, start_share=0.02, start_minimum=50, score_weight=50.0,
    ),
    SocialClass.CLERGY: ClassProfile(
        kingdom_food=5.0, economy_food=4.0, tax_value=1.0, salary=5.0,
        growth_weight=0.6, start_share=0.01, start_minimum=5, score_weight=0.0,
    ),
    SocialClass.PEASANTS: ClassProfile(
        kingdom_food=2.5, economy_food=2.0, tax_value=0.8, salary=0.0,
        growth_weight=1.0, start_share=0.85, start_minimum=0, score_weight=2.0,
    ),
    SocialClass.ARTISANS: ClassProfile(
        kingdom_food=3.5, economy_food=3.0, tax_value=2.0, salary=0.0,
        growth_weight=0.7, start_share=0.05, start_minimum=20, score_weight=40.0,
    ),
    SocialClass.SCHOLARS: ClassProfile(
        kingdom_food=3.0, economy_food=3.0, tax_value=0.5, salary=8.0,
        growth_weight=0.4, start_share=0.005, start_minimum=5, score_weight=100.0,
    ),
}

# Share of the starting population that begins without work
START_UNEMPLOYED_SHARE = 0.04


# ---------------------------------------------------------------------------
# Weighted sums over a population record
# ---------------------------------------------------------------------------


def weighted_sum(population: Any, weight: str) -> float:
    """Return ``sum(count * profile.<weight>)`` over all classes."""

    total = 0.0
    for cls, profile in DEFAULT_CLASSES.items():
        total += getattr(population, cls.value) * getattr(profile, weight)
    return total


def food_demand(population: Any, table: str = "kingdom") -> float:
    """Yearly food demand using the ``kingdom`` or ``economy`` table."""

    if table not in ("kingdom", "economy"):
        raise ValueError(f"unknown food table {table!r}")
    return weighted_sum(population, f"{table}_food")


def starting_population(total: int) -> Dict[str, int]:
    """Split ``total`` inhabitants across the classes for a new kingdom."""

    out = {
        cls.value: max(p.start_minimum, int(total * p.start_share))
        for cls, p in DEFAULT_CLASSES.items()
    }
    out["unemployed"] = int(total * START_UNEMPLOYED_SHARE)
    return out


__all__ = [
    "SocialClass",
    "ClassProfile",
    "DEFAULT_CLASSES",
    "START_UNEMPLOYED_SHARE",
    "weighted_sum",
    "food_demand",
    "starting_population",
]
