from __future__ import annotations
from dataclasses import dataclass, field, asdict, fields, replace
from typing import Any, Callable, Dict, List, Optional
import logging
import math
import uuid

import numpy as np

from buildings import (
    CONSTRUCTION_STABILITY_BONUS, CONSTRUCTION_TECHNOLOGY_BONUS, MILL_COST,
    MILL_FOOD_RATE_MULTIPLIER, MILL_HAPPINESS_BONUS, MILL_WOOD_COST,
    RECRUIT_MORALE_PER_SOLDIER, RECRUIT_PEASANT_SHARE, RECRUIT_UNEMPLOYED_SHARE,
    RECRUITMENT_COSTS, TECHNOLOGY_BUILDINGS, BuildingEffect, get_building,
)
from modifiers import MODIFIERS, GameModifiers
from resources import (
    CLIMATE_RESOURCE_MULTIPLIERS, EXTERNAL_EFFECT, KINGDOM_ACTIONS,
    KINGDOM_CONSUMPTION, KINGDOM_PRODUCTION, KINGDOM_SEASON, KINGDOM_TAXES,
    KINGDOM_UPKEEP, ResourceLedger,
)
from sim.rng import make_rng
from sim.safe_parse import clamp, to_bool, to_float, to_int
from society import DEFAULT_CLASSES, food_demand, starting_population, weighted_sum
from time_model import AUTUMN, MONTH, SEASONS, SPRING, SUMMER, WINTER, YEAR, next_season
from workforce import WORKFORCE_SYSTEM

logger = logging.getLogger(__name__)

CLIMATES = ("temperate", "arid", "cold", "tropical", "mountainous", "coastal")
UNIT_TYPES = tuple(RECRUITMENT_COSTS)

# Stored tax rates are held inside the open interval accepted by set_tax_rate
MIN_TAX_RATE = 0.01
MAX_TAX_RATE = 0.99

# Resources whose yearly output is physically extracted from the land and
# may be capped by an external reserve (see ``Kingdom.extraction_hook``).
EXTRACTED_RESOURCES = ("wood", "stone", "iron")

SEASONAL_PRODUCTION = {
    SPRING: {"food": 1.2, "wood": 1.1},
    SUMMER: {"food": 1.4, "wood": 1.0},
    AUTUMN: {"food": 1.0, "wood": 0.9},
    WINTER: {"food": 0.5, "wood": 0.7},
}


# =============================== DATA TYPES ===================================

@dataclass
class KingdomResources:
    gold: float = 0.0
    food: float = 0.0
    wood: float = 0.0
    stone: float = 0.0
    iron: float = 0.0
    luxury_goods: float = 0.0
    debt: float = 0.0
    treasury: float = 0.0  # long-term reserves


@dataclass
class KingdomPopulation:
    nobles: int = 0
    merchants: int = 0
    soldiers: int = 0
    clergy: int = 0
    peasants: int = 0
    artisans: int = 0
    scholars: int = 0
    unemployed: int = 0
    growth_rate: float = 0.015

    def total(self) -> int:
        """Inhabitants across all social classes (the unemployed are peasants or artisans)."""
        return sum(getattr(self, cls.value) for cls in DEFAULT_CLASSES)

    def headcount(self) -> int:
        """Class totals plus the unemployed counter, as used for administration costs."""
        return self.total() + self.unemployed


@dataclass
class KingdomMilitary:
    infantry: int = 0
    cavalry: int = 0
    archers: int = 0
    siege: int = 0
    navy: int = 0
    morale: float = 65.0
    recruitment_rate: float = 0.05
    training_level: float = 40.0  # 0-100
    equipment_quality: float = 50.0  # 0-100


@dataclass
class KingdomInfrastructure:
    markets: int = 1
    churches: int = 1
    barracks: int = 1
    farms: int = 8
    mines: int = 2
    roads: int = 3
    schools: int = 1
    hospitals: int = 0
    ports: int = 0
    walls: int = 0
    castles: int = 0
    universities: int = 0
    guildhalls: int = 0
    taverns: int = 2
    warehouses: int = 1
    workshops: int = 2


@dataclass
class KingdomTerrain:
    # composition in %, not forced to sum to 100
    plains: float = 40.0
    forests: float = 25.0
    mountains: float = 15.0
    hills: float = 10.0
    wetlands: float = 5.0
    desert: float = 5.0
    arable_land: float = 0.0  # hectares


@dataclass
class KingdomStats:
    stability: float = 70.0
    crime_rate: float = 20.0
    literacy_rate: float = 15.0
    trade_power: float = 30.0
    cultural_influence: float = 25.0
    technological_level: float = 20.0
    diplomatic_relations: float = 50.0


@dataclass
class ProductionRates:
    food: float = 0.0
    wood: float = 0.0
    stone: float = 0.0
    iron: float = 0.0
    gold: float = 0.0


@dataclass
class ConsumptionRates:
    food: float = 0.0
    wood: float = 0.0
    gold: float = 0.0


@dataclass
class KingdomConfig:
    name: str
    ruler_name: str
    difficulty: int = 1
    climate: str = "temperate"
    terrain: Optional[Dict[str, float]] = None
    starting_resources: Optional[Dict[str, float]] = None
    starting_infrastructure: Optional[Dict[str, int]] = None
    founding_year: int = 1
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("kingdom name must not be empty")
        if self.climate not in CLIMATES:
            raise ValueError(f"invalid climate {self.climate!r}")
        if self.difficulty < 1:
            raise ValueError("difficulty must be >= 1")
        checks = (
            ("terrain", self.terrain, KingdomTerrain),
            ("starting_resources", self.starting_resources, KingdomResources),
            ("starting_infrastructure", self.starting_infrastructure, KingdomInfrastructure),
        )
        for name, overrides, cls in checks:
            unknown = set(overrides or ()) - {f.name for f in fields(cls)}
            if unknown:
                raise ValueError(f"{name} has unknown keys: {sorted(unknown)}")
        negative = sorted(k for k, v in (self.starting_resources or {}).items()
                          if k != "debt" and v < 0)
        if negative:
            raise ValueError(f"starting_resources must not be negative: {negative}")


@dataclass
class TaxResult:
    revenue: int
    happiness_impact: int
    corruption_loss: int = 0


@dataclass
class EffectDelta:
    """Additive changes written by an external policy or event source.

    ``production_modifiers`` are percentage changes applied to the current
    production rates (``{"food": 10}`` means +10%).  They only show in the
    ``production_rates`` view: every tick recomputes the rates from state
    before producing, so a tick never uses the modified values.
    """
    resources: Dict[str, float] = field(default_factory=dict)
    happiness: float = 0.0
    population: Dict[str, int] = field(default_factory=dict)
    military: Dict[str, float] = field(default_factory=dict)
    infrastructure: Dict[str, int] = field(default_factory=dict)
    stats: Dict[str, float] = field(default_factory=dict)
    production_modifiers: Dict[str, float] = field(default_factory=dict)


# =============================== KINGDOM ======================================

class Kingdom:
    """Aggregate root of one player's realm.

    Owns the canonical state and advances it through ``process_month`` and
    ``process_year``.  All liquid-resource changes go through
    :attr:`ledger`, which tags them with the engine that caused them.
    """

    def __init__(self, config: KingdomConfig, *,
                 rng: Optional[np.random.Generator] = None,
                 modifiers: Optional[GameModifiers] = None,
                 authority: str = "additive") -> None:
        self.id = f"kingdom-{uuid.uuid4().hex[:12]}"
        self.name = config.name
        self.ruler_name = config.ruler_name
        self.difficulty = config.difficulty
        self.climate = config.climate
        self.founding_year = config.founding_year

        self.rng = rng if rng is not None else make_rng(config.seed)
        self.modifiers = modifiers if modifiers is not None else MODIFIERS
        self.ledger = ResourceLedger(self, authority)
        # Optional callback (resource, requested) -> granted for extracted resources
        self.extraction_hook: Optional[Callable[[str, float], float]] = None

        self.tax_rate = 0.15
        self.happiness = 70.0
        self.land_area = 10000.0  # km²
        self.current_season = SPRING
        self.current_year = config.founding_year
        self.is_at_war = False
        self.alliances: List[str] = []
        self.vassals: List[str] = []
        self.trade_partners: List[str] = []

        self.terrain = self._initial_terrain(config.terrain)
        self.resources = self._initial_resources(config.starting_resources)
        self.population = self._initial_population()
        self.infrastructure = replace(
            KingdomInfrastructure(ports=1 if self.climate == "coastal" else 0),
            **(config.starting_infrastructure or {}),
        )
        self.military = KingdomMilitary(
            infantry=100, cavalry=20, archers=30, siege=0,
            navy=10 if self.climate == "coastal" else 0,
        )
        self.stats = KingdomStats()

        self._production = ProductionRates()
        self._consumption = ConsumptionRates()
        self.enforce_invariants()
        self._recalculate_rates()

    # ------------------------ Initial state -----------------------------------

    def _initial_terrain(self, overrides: Optional[Dict[str, float]]) -> KingdomTerrain:
        t = replace(KingdomTerrain(arable_land=self.land_area * 0.4), **(overrides or {}))
        # Climate presets win over caller overrides
        if self.climate == "arid":
            t.desert, t.plains, t.arable_land = 40.0, 35.0, self.land_area * 0.2
        elif self.climate == "cold":
            t.mountains, t.forests, t.arable_land = 25.0, 35.0, self.land_area * 0.3
        elif self.climate == "tropical":
            t.forests, t.wetlands, t.arable_land = 40.0, 15.0, self.land_area * 0.35
        elif self.climate == "mountainous":
            t.mountains, t.hills, t.arable_land = 40.0, 20.0, self.land_area * 0.25
        return t

    def _initial_resources(self, overrides: Optional[Dict[str, float]]) -> KingdomResources:
        base = max(0.0, 1 - (self.difficulty - 1) * 0.15)
        mult = CLIMATE_RESOURCE_MULTIPLIERS[self.climate]
        res = KingdomResources(
            gold=math.floor(5000 * base * mult["gold"]),
            food=math.floor(10000 * base * mult["food"]),
            wood=math.floor(5000 * base * mult["wood"]),
            stone=math.floor(3000 * base * mult["stone"]),
            iron=math.floor(2000 * base * mult["iron"]),
            luxury_goods=math.floor(500 * base),
            debt=0,
            treasury=math.floor(10000 * base),
        )
        return replace(res, **(overrides or {}))

    def _initial_population(self) -> KingdomPopulation:
        total = math.floor(3000 * (1 - (self.difficulty - 1) * 0.1))
        return KingdomPopulation(**starting_population(max(0, total)))

    # ------------------------ Rates --------------------------------------------

    def _recalculate_rates(self) -> None:
        """Recompute production and consumption from the current state."""
        self._production = ProductionRates(
            food=self._food_production_rate(),
            wood=self._wood_production_rate(),
            stone=self._stone_production_rate(),
            iron=self._iron_production_rate(),
            gold=self._gold_production_rate(),
        )
        self._consumption = ConsumptionRates(
            food=self.calculate_food_consumption(),
            wood=self._wood_consumption(),
            gold=self._gold_consumption(),
        )

    @property
    def production_rates(self) -> ProductionRates:
        return replace(self._production)

    @property
    def consumption_rates(self) -> ConsumptionRates:
        return replace(self._consumption)

    def update_production_rates(self, modifiers: Dict[str, float]) -> None:
        """Apply temporary percentage modifiers, e.g. ``{"food": 10}`` for +10%.

        The change lasts until the rates are next recomputed at the start
        of a tick.
        """
        for key, pct in modifiers.items():
            if not hasattr(self._production, key):
                logger.warning("update_production_rates: unknown resource %r", key)
                continue
            setattr(self._production, key, getattr(self._production, key) * (1 + pct / 100))

    def _food_production_rate(self) -> int:
        infra = self.infrastructure
        climate_bonus = 1.2 if self.climate in ("temperate", "tropical") else 1.0
        return math.floor(
            (infra.farms * 250 + infra.roads * 10 + self.population.peasants * 0.1) * climate_bonus
        )

    def _wood_production_rate(self) -> int:
        return math.floor(self.terrain.forests * 20 + self.infrastructure.workshops * 15)

    def _stone_production_rate(self) -> int:
        t = self.terrain
        return math.floor(t.mountains * 15 + t.hills * 10 + self.infrastructure.mines * 50)

    def _iron_production_rate(self) -> int:
        infra = self.infrastructure
        return math.floor(infra.mines * 30 + self.terrain.mountains * 5 + infra.workshops * 10)

    def _gold_production_rate(self) -> int:
        # Taxes are collected separately by collect_taxes()
        infra = self.infrastructure
        return math.floor(infra.markets * 75 + infra.ports * 120 + infra.mines * 25)

    def _wood_consumption(self) -> int:
        pop, infra = self.population, self.infrastructure
        base = pop.peasants * 0.2 + pop.nobles * 1.5 + infra.farms * 10
        return math.floor(base * (1.5 if self.current_season == WINTER else 1.0))

    def _gold_consumption(self) -> int:
        m, infra = self.military, self.infrastructure
        military = m.infantry + m.cavalry * 3 + m.archers * 2 + m.siege * 10 + m.navy * 5
        buildings = (infra.markets * 25 + infra.barracks * 40 + infra.castles * 100
                     + infra.hospitals * 35 + infra.schools * 20)
        salaries = weighted_sum(self.population, "salary")
        return math.floor(military + buildings + salaries)

    def calculate_food_consumption(self) -> int:
        return math.floor(food_demand(self.population, "kingdom"))

    def calculate_tax_revenue(self) -> int:
        infra = self.infrastructure
        infrastructure_bonus = infra.roads * 0.05 + infra.markets * 0.1
        efficiency = (self.happiness / 100) * (self.stats.stability / 100)
        base = weighted_sum(self.population, "tax_value")
        return math.floor(base * self.tax_rate * (1 + infrastructure_bonus) * efficiency)

    def _tax_efficiency(self) -> float:
        roads_bonus = min(0.3, self.infrastructure.roads * 0.05)
        stability_bonus = self.stats.stability * 0.005
        literacy_penalty = (100 - self.stats.literacy_rate) * 0.001
        return clamp(0.8 + roads_bonus + stability_bonus - literacy_penalty, 0.3, 1.0)

    # ------------------------ Player actions -----------------------------------

    def set_tax_rate(self, rate: float) -> bool:
        if not 0 < rate < 1:
            return False
        self.tax_rate = float(rate)
        return True

    def build_structure(self, kind: str, count: int = 1) -> bool:
        """Construct ``count`` buildings of ``kind``.

        Returns ``False`` without touching any state when the type is
        unknown or the kingdom cannot pay for all of them.
        """
        building = get_building(kind)
        if building is None or count <= 0:
            return False

        res = self.resources
        if (res.gold < building.cost * count
                or res.wood < building.wood_cost * count
                or res.stone < building.stone_cost * count):
            return False

        self.ledger.debit("gold", building.cost * count, KINGDOM_ACTIONS)
        if building.wood_cost:
            self.ledger.debit("wood", building.wood_cost * count, KINGDOM_ACTIONS)
        if building.stone_cost:
            self.ledger.debit("stone", building.stone_cost * count, KINGDOM_ACTIONS)

        setattr(self.infrastructure, kind, getattr(self.infrastructure, kind) + count)
        for effect in building.effects:
            self._apply_building_effect(effect, count)

        self.stats.stability = min(100.0, self.stats.stability + count * CONSTRUCTION_STABILITY_BONUS)
        if kind in TECHNOLOGY_BUILDINGS:
            self.stats.technological_level = min(
                100.0, self.stats.technological_level + count * CONSTRUCTION_TECHNOLOGY_BONUS
            )
        self.enforce_invariants()
        return True

    def _apply_building_effect(self, effect: BuildingEffect, count: int) -> None:
        amount = effect.value * count
        if effect.kind == "happiness":
            self.happiness = min(100.0, self.happiness + amount)
        elif effect.kind == "food_production":
            self.ledger.credit("food", amount, KINGDOM_ACTIONS)
        elif effect.kind == "stability":
            self.stats.stability = min(100.0, self.stats.stability + amount)
        elif effect.kind == "literacy":
            self.stats.literacy_rate = min(100.0, self.stats.literacy_rate + amount)

    def build_market(self) -> bool:
        return self.build_structure("markets")

    def build_farm(self) -> bool:
        return self.build_structure("farms")

    def build_mill(self) -> bool:
        """Build a mill: counted as a workshop, +5% food output until rates refresh."""
        if self.resources.gold < MILL_COST or self.resources.wood < MILL_WOOD_COST:
            return False
        self.ledger.debit("gold", MILL_COST, KINGDOM_ACTIONS)
        self.ledger.debit("wood", MILL_WOOD_COST, KINGDOM_ACTIONS)
        self.infrastructure.workshops += 1
        self._production.food *= MILL_FOOD_RATE_MULTIPLIER
        self.happiness = min(100.0, self.happiness + MILL_HAPPINESS_BONUS)
        self.enforce_invariants()
        return True

    def recruit_soldiers(self, count: int, unit: str = "infantry") -> bool:
        cost = RECRUITMENT_COSTS.get(unit)
        if cost is None or count <= 0:
            return False

        res = self.resources
        if (res.gold < cost.gold * count or res.food < cost.food * count
                or res.iron < cost.iron * count or res.wood < cost.wood * count):
            return False

        self.ledger.debit("gold", cost.gold * count, KINGDOM_ACTIONS)
        self.ledger.debit("food", cost.food * count, KINGDOM_ACTIONS)
        if cost.iron:
            self.ledger.debit("iron", cost.iron * count, KINGDOM_ACTIONS)
        if cost.wood:
            self.ledger.debit("wood", cost.wood * count, KINGDOM_ACTIONS)

        setattr(self.military, unit, getattr(self.military, unit) + count)
        self.military.morale = min(100.0, self.military.morale + count * RECRUIT_MORALE_PER_SOLDIER)

        pop = self.population
        pop.soldiers += count
        pop.peasants = max(0, pop.peasants - math.floor(count * RECRUIT_PEASANT_SHARE))
        pop.unemployed = max(0, pop.unemployed - math.floor(count * RECRUIT_UNEMPLOYED_SHARE))
        self.enforce_invariants()
        return True

    def collect_taxes(self) -> TaxResult:
        revenue = math.floor(self.calculate_tax_revenue() * self._tax_efficiency())
        self.ledger.credit("gold", revenue, KINGDOM_TAXES)

        impact = -math.floor(self.tax_rate * 20)
        self.happiness = max(0.0, self.happiness + impact)

        lost = 0
        if (self.rng.random() < self.modifiers.corruption_chance
                and self.stats.stability < self.modifiers.corruption_stability_threshold):
            lost = math.floor(revenue * self.modifiers.corruption_share)
            self.ledger.debit("gold", lost, KINGDOM_TAXES)
        self.enforce_invariants()
        return TaxResult(revenue=revenue, happiness_impact=impact, corruption_loss=lost)

    def _collect_taxes_safely(self) -> Optional[TaxResult]:
        try:
            return self.collect_taxes()
        except Exception:
            logger.exception("collect_taxes failed in year %s; continuing", self.current_year)
            return None

    def apply_effects(self, delta: EffectDelta) -> None:
        """Apply an external policy/event delta, then re-clamp the state."""
        for key, amount in delta.resources.items():
            if not hasattr(self.resources, key):
                logger.warning("apply_effects: unknown resource %r", key)
            elif amount >= 0:
                self.ledger.credit(key, amount, EXTERNAL_EFFECT)
            else:
                self.ledger.debit(key, -amount, EXTERNAL_EFFECT)

        self.happiness += delta.happiness
        sections = (
            (self.population, delta.population),
            (self.military, delta.military),
            (self.infrastructure, delta.infrastructure),
            (self.stats, delta.stats),
        )
        for target, changes in sections:
            for key, amount in changes.items():
                if not hasattr(target, key):
                    logger.warning("apply_effects: unknown field %r on %s",
                                   key, type(target).__name__)
                    continue
                setattr(target, key, getattr(target, key) + amount)

        if delta.production_modifiers:
            self.update_production_rates(delta.production_modifiers)
        self.enforce_invariants()

    # ------------------------ Ticks ---------------------------------------------

    def process_month(self) -> None:
        """Apply one twelfth of the yearly production and consumption."""
        self.enforce_invariants()
        self.ledger.begin_tick(f"{self.current_year}/month")
        self._recalculate_rates()

        prod, cons = self._production, self._consumption
        for key in ("food", "wood", "stone", "iron", "gold"):
            self._produce(key, math.floor(getattr(prod, key) / 12))
        for key in ("food", "wood", "gold"):
            self.ledger.debit(key, math.floor(getattr(cons, key) / 12), KINGDOM_CONSUMPTION)

        self.military.morale = clamp(self.military.morale + (self.happiness - 50) * 0.02)
        self._update_population(MONTH)
        self._update_stats(MONTH)
        self.enforce_invariants()

    def process_year(self) -> None:
        """Advance one full year; the sub-step order below is load-bearing."""
        self.enforce_invariants()
        self._recalculate_rates()

        self.current_year += 1
        self.current_season = next_season(self.current_season)
        self.ledger.begin_tick(f"{self.current_year}/year")

        self._collect_taxes_safely()
        self._produce_resources()
        self._consume_resources()
        self._update_population(YEAR)
        self._maintain_military()
        self._maintain_infrastructure()
        self._update_stats(YEAR)
        self._apply_seasonal_effects()
        self.enforce_invariants()

    def _produce(self, key: str, amount: float) -> float:
        if amount <= 0:
            return 0
        if self.extraction_hook is not None and key in EXTRACTED_RESOURCES:
            amount = self.extraction_hook(key, amount)
        return self.ledger.credit(key, amount, KINGDOM_PRODUCTION)

    def _produce_resources(self) -> None:
        seasonal = SEASONAL_PRODUCTION[self.current_season]
        prod = self._production
        self._produce("food", math.floor(prod.food * seasonal["food"]))
        self._produce("wood", math.floor(prod.wood * seasonal["wood"]))
        self._produce("stone", math.floor(prod.stone))
        self._produce("iron", math.floor(prod.iron))
        self._produce("gold", math.floor(prod.gold))

    def _consume_resources(self) -> None:
        cons = self._consumption
        self.ledger.debit("food", cons.food, KINGDOM_CONSUMPTION)
        self.ledger.debit("wood", cons.wood, KINGDOM_CONSUMPTION)
        self.ledger.debit("gold", cons.gold, KINGDOM_CONSUMPTION)

    def _update_population(self, dt: float) -> None:
        pop = self.population
        food_bonus = 1.2 if self.resources.food > 10000 else 1.0
        growth = pop.growth_rate * (self.happiness / 100) * food_bonus * dt
        pop.peasants += math.floor(pop.peasants * growth)

        if self.happiness < self.modifiers.emigration_threshold:
            pop.peasants = max(0, pop.peasants - math.floor(pop.peasants * 0.02 * dt))
        elif self.happiness > self.modifiers.immigration_threshold:
            pop.peasants += math.floor(pop.peasants * 0.01 * dt)

        self._update_unemployment(dt)

    def _update_unemployment(self, dt: float) -> None:
        allocation = WORKFORCE_SYSTEM.calculate_workforce(self.population, self.infrastructure)
        self.population.unemployed = allocation.unemployed
        if WORKFORCE_SYSTEM.causes_unrest(allocation):
            self.happiness = max(0.0, self.happiness - WORKFORCE_SYSTEM.UNREST_HAPPINESS_PENALTY * dt)
            self.stats.crime_rate = min(
                100.0, self.stats.crime_rate + WORKFORCE_SYSTEM.UNREST_CRIME_INCREASE * dt
            )

    def _maintain_military(self) -> None:
        m = self.military
        morale_change = ((self.happiness / 100) * 2 - (10 if self.is_at_war else 0)
                         + (m.training_level / 100) * 3)
        m.morale = clamp(m.morale + morale_change)
        if self.infrastructure.barracks > 0:
            m.training_level = min(100.0, m.training_level + 0.5)
        m.equipment_quality = max(0.0, m.equipment_quality - 0.3)

        if self.resources.iron > 500 and self.resources.gold > 1000:
            m.equipment_quality = min(100.0, m.equipment_quality + 2)
            self.ledger.debit("iron", 100, KINGDOM_UPKEEP)
            self.ledger.debit("gold", 200, KINGDOM_UPKEEP)

    def _maintain_infrastructure(self) -> None:
        infra = self.infrastructure
        chance = self.modifiers.infrastructure_decay_chance
        for f in fields(infra):
            # one draw per building type keeps the random sequence stable
            decays = self.rng.random() < chance
            if decays and getattr(infra, f.name) > 0:
                setattr(infra, f.name, getattr(infra, f.name) - 1)

        if infra.roads < self.modifiers.road_target and self.resources.stone > self.modifiers.road_stone_cost:
            infra.roads += 1
            self.ledger.debit("stone", self.modifiers.road_stone_cost, KINGDOM_UPKEEP)

    def _update_stats(self, dt: float) -> None:
        s, infra = self.stats, self.infrastructure
        stability_change = ((self.happiness / 100) * 5 - (s.crime_rate / 100) * 8
                            + (3 if infra.churches > 0 else 0)
                            + (5 if self.military.infantry > 200 else 0)
                            - (15 if self.is_at_war else 0))
        s.stability = clamp(s.stability + stability_change * dt)

        peasants = self.population.peasants
        idle_ratio = self.population.unemployed / peasants if peasants > 0 else 0.0
        crime_change = (idle_ratio * 10 - (s.stability / 100) * 5
                        - (2 if infra.churches > 0 else 0))
        s.crime_rate = clamp(s.crime_rate + crime_change * dt)

        if infra.schools > 0 or infra.universities > 0:
            literacy = infra.schools * 0.5 + infra.universities * 1.5
            s.literacy_rate = min(100.0, s.literacy_rate + literacy * dt)

        trade_change = (infra.markets * 2 + infra.ports * 3 + infra.roads
                        - (s.crime_rate / 100) * 5)
        s.trade_power = clamp(s.trade_power + trade_change * dt)

    def _apply_seasonal_effects(self) -> None:
        if self.current_season == SPRING:
            self.happiness = min(100.0, self.happiness + 3)
        elif self.current_season == SUMMER:
            if self.rng.random() < 0.1 and self.infrastructure.hospitals < 2:
                self.population.peasants = max(0, self.population.peasants - 50)
        elif self.current_season == AUTUMN:
            food = self.resources.food
            target = min(self.modifiers.autumn_food_cap, food * 1.2)
            if target >= food:
                self.ledger.credit("food", target - food, KINGDOM_SEASON)
            else:
                self.ledger.debit("food", food - target, KINGDOM_SEASON)
        elif self.current_season == WINTER:
            self.happiness = max(0.0, self.happiness - 5)
            if self.resources.wood < self.modifiers.winter_wood_threshold:
                self.happiness = max(0.0, self.happiness - 10)
                self.population.peasants = max(0, self.population.peasants - 100)

    def enforce_invariants(self) -> None:
        res = self.resources
        for f in fields(res):
            if f.name != "debt" and getattr(res, f.name) < 0:
                setattr(res, f.name, 0)
        for target in (self.population, self.infrastructure):
            for f in fields(target):
                if f.name != "growth_rate":
                    setattr(target, f.name, max(0, math.floor(getattr(target, f.name))))
        m = self.military
        for name in UNIT_TYPES + ("siege", "navy"):
            setattr(m, name, max(0, math.floor(getattr(m, name))))
        m.morale = clamp(m.morale)
        m.training_level = clamp(m.training_level)
        m.equipment_quality = clamp(m.equipment_quality)
        for f in fields(self.stats):
            setattr(self.stats, f.name, clamp(getattr(self.stats, f.name)))
        self.happiness = clamp(self.happiness)
        self.tax_rate = clamp(self.tax_rate, MIN_TAX_RATE, MAX_TAX_RATE)

    # ------------------------ Summary ------------------------------------------

    def calculate_total_score(self) -> int:
        r, pop, infra, m, s = (self.resources, self.population, self.infrastructure,
                               self.military, self.stats)
        resource_score = (r.gold / 100 + r.food / 500 + r.wood / 300 + r.stone / 200
                          + r.iron / 150 + r.luxury_goods / 50)
        population_score = weighted_sum(pop, "score_weight") / 100
        infrastructure_score = (infra.markets * 60 + infra.churches * 30 + infra.barracks * 40
                                + infra.farms * 15 + infra.mines * 35 + infra.roads * 20
                                + infra.schools * 50 + infra.hospitals * 45 + infra.castles * 80)
        military_score = (m.infantry * 2 + m.cavalry * 5 + m.archers * 3 + m.siege * 15
                          + m.navy * 8 + m.morale * 10 + m.training_level * 5
                          + m.equipment_quality * 3) / 10
        stats_score = (self.happiness * 15 + s.stability * 10 + (100 - s.crime_rate) * 8
                       + s.literacy_rate * 12 + s.trade_power * 9 + s.cultural_influence * 7
                       + s.technological_level * 11 + s.diplomatic_relations * 6) / 10
        difficulty_mult = 1 + (self.difficulty - 1) * 0.5
        return math.floor((resource_score + population_score + infrastructure_score
                           + military_score + stats_score) / difficulty_mult)

    def military_strength(self) -> int:
        m = self.military
        raw = m.infantry + m.cavalry * 3 + m.archers * 2 + m.siege * 10 + m.navy * 5
        return math.floor(raw * (m.morale / 100) * (m.equipment_quality / 100))

    def get_summary(self) -> Dict[str, int]:
        r = self.resources
        net_worth = (r.gold + r.food * 0.5 + r.wood * 0.3 + r.stone * 0.4 + r.iron * 0.8
                     + r.luxury_goods * 10 + r.treasury)
        return {
            "total_population": self.population.total(),
            "net_worth": math.floor(net_worth),
            "military_strength": self.military_strength(),
            "development_score": self.calculate_total_score(),
        }

    # ------------------------ Serialization ------------------------------------

    def serialize(self) -> Dict[str, Any]:
        """Return a plain, JSON-compatible snapshot of the kingdom."""
        return {
            "id": self.id,
            "name": self.name,
            "ruler_name": self.ruler_name,
            "resources": asdict(self.resources),
            "population": asdict(self.population),
            "military": asdict(self.military),
            "infrastructure": asdict(self.infrastructure),
            "terrain": asdict(self.terrain),
            "stats": asdict(self.stats),
            "tax_rate": self.tax_rate,
            "happiness": self.happiness,
            "difficulty": self.difficulty,
            "land_area": self.land_area,
            "climate": self.climate,
            "current_season": self.current_season,
            "founding_year": self.founding_year,
            "current_year": self.current_year,
            "is_at_war": self.is_at_war,
            "alliances": list(self.alliances),
            "vassals": list(self.vassals),
            "trade_partners": list(self.trade_partners),
            "production_rates": asdict(self._production),
            "consumption_rates": asdict(self._consumption),
            "authority": self.ledger.authority_name,
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any], *,
                    rng: Optional[np.random.Generator] = None,
                    modifiers: Optional[GameModifiers] = None) -> "Kingdom":
        """Build a :class:`Kingdom` from ``serialize`` output."""
        required = {"name", "ruler_name", "resources", "population", "military",
                    "infrastructure", "terrain", "stats"}
        missing = required.difference(data)
        if missing:
            raise ValueError(f"missing keys: {sorted(missing)}")

        climate = data.get("climate", "temperate")
        season = data.get("current_season", SPRING)
        if season not in SEASONS:
            raise ValueError(f"invalid season {season!r}")
        authority = data.get("authority", "additive")
        kingdom = cls(
            KingdomConfig(
                name=data["name"],
                ruler_name=data["ruler_name"],
                difficulty=to_int(data.get("difficulty", 1), 1),
                climate=climate,
                founding_year=to_int(data.get("founding_year", 1), 1),
            ),
            rng=rng,
            modifiers=modifiers,
            authority=authority if authority != "custom" else "additive",
        )
        kingdom.id = str(data.get("id", kingdom.id))
        kingdom.resources = _load_section(KingdomResources, data["resources"])
        kingdom.population = _load_section(KingdomPopulation, data["population"])
        kingdom.military = _load_section(KingdomMilitary, data["military"])
        kingdom.infrastructure = _load_section(KingdomInfrastructure, data["infrastructure"])
        kingdom.terrain = _load_section(KingdomTerrain, data["terrain"])
        kingdom.stats = _load_section(KingdomStats, data["stats"])
        kingdom.tax_rate = to_float(data.get("tax_rate", 0.15), 0.15)
        kingdom.happiness = to_float(data.get("happiness", 70.0), 70.0)
        kingdom.land_area = to_float(data.get("land_area", 10000.0), 10000.0)
        kingdom.current_season = season
        kingdom.current_year = to_int(data.get("current_year", kingdom.founding_year))
        kingdom.is_at_war = to_bool(data.get("is_at_war", False))
        kingdom.alliances = list(data.get("alliances") or [])
        kingdom.vassals = list(data.get("vassals") or [])
        kingdom.trade_partners = list(data.get("trade_partners") or [])
        kingdom.enforce_invariants()
        kingdom._recalculate_rates()
        if "production_rates" in data:
            kingdom._production = _load_section(ProductionRates, data["production_rates"])
        if "consumption_rates" in data:
            kingdom._consumption = _load_section(ConsumptionRates, data["consumption_rates"])
        return kingdom


def _load_section(cls, values: Dict[str, Any]):
    """Coerce a snapshot section into dataclass ``cls``; missing fields keep defaults."""
    if not isinstance(values, dict):
        raise ValueError(f"{cls.__name__} section must be a mapping")
    defaults = cls()
    kwargs = {}
    for f in fields(cls):
        fallback = getattr(defaults, f.name)
        raw = values.get(f.name, fallback)
        kwargs[f.name] = to_int(raw, fallback) if f.type == "int" else to_float(raw, fallback)
    return cls(**kwargs)


def create_kingdom(config: KingdomConfig, **kwargs) -> Kingdom:
    """Driver entry point: build a new kingdom from ``config``."""
    return Kingdom(config, **kwargs)
