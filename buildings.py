"""Building and recruitment cost tables.

Each building type has a fixed gold price, optional wood/stone/iron
prices and a list of side effects applied once per building at
construction time.  Only the ``happiness``, ``stability``, ``literacy``
and ``food_production`` effects change kingdom state directly; the other
effect kinds describe what the building contributes through the kingdom's
recurring rate formulas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class BuildingEffect:
    kind: str
    value: float


@dataclass(frozen=True)
class BuildingSpec:
    cost: float
    wood_cost: float = 0.0
    stone_cost: float = 0.0
    # Listed for reference; construction does not charge iron.
    iron_cost: float = 0.0
    effects: Tuple[BuildingEffect, ...] = field(default_factory=tuple)


def _fx(*pairs: Tuple[str, float]) -> Tuple[BuildingEffect, ...]:
    return tuple(BuildingEffect(k, v) for k, v in pairs)


BUILDING_DATA: Dict[str, BuildingSpec] = {
    "markets": BuildingSpec(2000, wood_cost=500, effects=_fx(("happiness", 3), ("trade", 10))),
    "churches": BuildingSpec(1500, stone_cost=300, effects=_fx(("happiness", 4), ("stability", 5))),
    "barracks": BuildingSpec(2500, wood_cost=800, stone_cost=400,
                             effects=_fx(("recruitment", 5), ("training", 3))),
    "farms": BuildingSpec(1200, wood_cost=300, effects=_fx(("food_production", 200))),
    "mines": BuildingSpec(3000, wood_cost=400, effects=_fx(("resource_production", 10))),
    "roads": BuildingSpec(800, stone_cost=200, effects=_fx(("trade", 5), ("mobility", 8))),
    "schools": BuildingSpec(2200, wood_cost=400, stone_cost=300, effects=_fx(("literacy", 7))),
    "hospitals": BuildingSpec(2800, wood_cost=600, stone_cost=400,
                              effects=_fx(("happiness", 5), ("health", 10))),
    "ports": BuildingSpec(3500, wood_cost=1200, stone_cost=800, effects=_fx(("trade", 15), ("navy", 10))),
    "walls": BuildingSpec(5000, stone_cost=2000, effects=_fx(("defense", 20), ("stability", 8))),
    "castles": BuildingSpec(10000, wood_cost=2000, stone_cost=5000, iron_cost=500,
                            effects=_fx(("defense", 50), ("prestige", 15))),
    "universities": BuildingSpec(6000, wood_cost=1500, stone_cost=1200,
                                 effects=_fx(("literacy", 15), ("technology", 10))),
    "guildhalls": BuildingSpec(1800, wood_cost=600, effects=_fx(("trade", 8), ("artisans", 5))),
    "taverns": BuildingSpec(900, wood_cost=300, effects=_fx(("happiness", 6))),
    "warehouses": BuildingSpec(1400, wood_cost=800, effects=_fx(("storage", 1000))),
    "workshops": BuildingSpec(1600, wood_cost=500, iron_cost=100, effects=_fx(("production", 8))),
}

# Construction projects raise stability by this much per building
CONSTRUCTION_STABILITY_BONUS = 2.0
# Buildings that advance the technological level, and by how much each
TECHNOLOGY_BUILDINGS = frozenset({"universities", "schools", "workshops"})
CONSTRUCTION_TECHNOLOGY_BONUS = 3.0

# A mill is counted as a workshop but boosts food output immediately
MILL_COST = 1800.0
MILL_WOOD_COST = 200.0
MILL_FOOD_RATE_MULTIPLIER = 1.05
MILL_HAPPINESS_BONUS = 3.0


@dataclass(frozen=True)
class RecruitmentCost:
    gold: float
    food: float
    iron: float = 0.0
    wood: float = 0.0


RECRUITMENT_COSTS: Dict[str, RecruitmentCost] = {
    "infantry": RecruitmentCost(gold=50, food=10),
    "cavalry": RecruitmentCost(gold=150, food=30, iron=5),
    "archers": RecruitmentCost(gold=75, food=15, wood=10),
}

# Recruits are drawn 80% from peasants and 20% from the unemployed
RECRUIT_PEASANT_SHARE = 0.8
RECRUIT_UNEMPLOYED_SHARE = 0.2
RECRUIT_MORALE_PER_SOLDIER = 0.1


def get_building(kind: str) -> Optional[BuildingSpec]:
    """Return the building definition for ``kind`` or ``None`` for unknown building types."""
    return BUILDING_DATA.get(kind)
