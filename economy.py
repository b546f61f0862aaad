"""
Yearly economy engine: harvest, food balance, taxation, trade and debt.

The engine keeps only per-kingdom market state (prices, inflation and open
trade offers).  Every operation receives the kingdom it acts on, and all
resource changes are routed through ``kingdom.ledger`` so they can be
reconciled with the kingdom's own production.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional
import logging
import math

import numpy as np

from modifiers import MODIFIERS, GameModifiers
from resources import (
    ECONOMY_DEBT, ECONOMY_HARVEST, ECONOMY_MAINTENANCE, ECONOMY_SURPLUS_SALE,
    ECONOMY_TAXES, ECONOMY_TRADE, RESOURCE_NAMES,
)
from sim.rng import choice, make_rng, uniform
from sim.safe_parse import clamp, to_float, to_int
from society import DEFAULT_CLASSES, food_demand

logger = logging.getLogger(__name__)

# Harvest multiplier per climate
CLIMATE_MODIFIERS: Dict[str, float] = {
    "temperate": 1.2,
    "arid": 0.6,
    "cold": 0.8,
    "tropical": 1.0,
    "mountainous": 0.7,
    "coastal": 1.1,
}

BASE_MARKET_PRICES: Dict[str, float] = {
    "gold": 1.0,
    "food": 0.5,
    "wood": 0.3,
    "stone": 0.4,
    "iron": 0.8,
    "luxury_goods": 2.0,
    "debt": 1.0,
    "treasury": 1.0,
}

FOOD_PER_FARM = 200
TRADED_RESOURCES = ("food", "wood", "stone", "iron")

INFRASTRUCTURE_UPKEEP = {
    "markets": 50, "farms": 20, "mines": 40, "roads": 10,
    "barracks": 60, "churches": 30, "schools": 25, "hospitals": 35,
}
MILITARY_UPKEEP = {"infantry": 3, "cavalry": 8, "archers": 4, "siege": 50, "navy": 30}


@dataclass
class HarvestResult:
    food_produced: int
    food_quality: float  # 0-1
    affected_by_weather: bool
    weather_effect: float = 1.0


@dataclass
class EconomyUpdate:
    tax_revenue: int
    maintenance_cost: int
    food_consumption: float
    food_deficit: float
    happiness_change: float
    population_change: int
    gold_change: int
    inflation: float


@dataclass
class PopulationChange:
    nobles: int = 0
    merchants: int = 0
    peasants: int = 0
    soldiers: int = 0
    clergy: int = 0
    artisans: int = 0
    scholars: int = 0
    total_growth: int = 0


@dataclass
class TradeOpportunity:
    type: str  # "import" or "export"
    resource: str
    amount: int
    price_per_unit: float
    expiration_year: int


class EconomySystem:
    """Per-kingdom economy engine.

    Parameters
    ----------
    difficulty:
        Scales maintenance costs by ``1 + (difficulty - 1) * 0.2``.
    game_speed:
        Kept for drivers that pace several kingdoms; not used by the
        yearly formulas.
    rng:
        Source for weather noise, famine disease and trade offers.
    """

    def __init__(self, difficulty: int = 1, game_speed: float = 1, *,
                 rng: Optional[np.random.Generator] = None,
                 modifiers: Optional[GameModifiers] = None) -> None:
        if difficulty < 1:
            raise ValueError("difficulty must be >= 1")
        self.difficulty = difficulty
        self.game_speed = game_speed
        self.rng = rng if rng is not None else make_rng()
        self.modifiers = modifiers if modifiers is not None else MODIFIERS
        self.climate_modifiers = dict(CLIMATE_MODIFIERS)
        self.market_prices = dict(BASE_MARKET_PRICES)
        self.inflation_rate = self.modifiers.base_inflation
        self.trade_opportunities: List[TradeOpportunity] = []

    # ------------------------------------------------------------------ harvest

    def calculate_harvest(self, kingdom) -> HarvestResult:
        """Roll this year's harvest and credit the stored share to food."""
        infra = kingdom.infrastructure
        base = infra.farms * FOOD_PER_FARM
        climate = self.climate_modifiers.get(kingdom.climate, 1.0)
        weather = uniform(self.rng, 0.8, 1.2)
        road_bonus = infra.roads * 0.05
        quality = 0.5 + kingdom.happiness / 200 + infra.farms * 0.01

        total = math.floor(base * climate * weather * (1 + road_bonus))
        storage = min(0.9, infra.markets * 0.1) if infra.markets > 0 else 0.7
        produced = math.floor(total * storage)
        kingdom.ledger.credit("food", produced, ECONOMY_HARVEST)

        return HarvestResult(
            food_produced=produced,
            food_quality=min(1.0, quality),
            affected_by_weather=weather < 0.9 or weather > 1.1,
            weather_effect=weather,
        )

    # ------------------------------------------------------------------ yearly

    def update_economy(self, kingdom, harvest: Optional[HarvestResult] = None) -> EconomyUpdate:
        """Apply one year of food balance, gold flow, debt, inflation and growth."""
        consumption = food_demand(kingdom.population, "economy")
        deficit = max(0.0, consumption - kingdom.resources.food)

        if deficit > 0:
            deficit_pct = deficit / consumption
            happiness_change = -min(50.0, deficit_pct * 100)
            if deficit_pct > self.modifiers.famine_threshold:
                self._apply_famine(kingdom, deficit_pct)
        elif consumption > 0:
            surplus_pct = (kingdom.resources.food - consumption) / consumption
            happiness_change = min(15.0, surplus_pct * 20)
            if surplus_pct > self.modifiers.surplus_sale_threshold:
                self._sell_surplus(kingdom, consumption)
        else:
            happiness_change = 0.0

        kingdom.happiness = clamp(kingdom.happiness + happiness_change)

        tax = math.floor(kingdom.calculate_tax_revenue() * (1 - self.inflation_rate))
        maintenance = self.calculate_maintenance_cost(kingdom)
        trade = self.calculate_trade_income(kingdom)
        kingdom.ledger.credit("gold", tax, ECONOMY_TAXES)
        kingdom.ledger.credit("gold", trade, ECONOMY_TRADE)
        kingdom.ledger.debit("gold", maintenance, ECONOMY_MAINTENANCE)

        self._manage_debt(kingdom)
        self._adjust_inflation(kingdom)

        change = self.calculate_detailed_population_changes(kingdom)
        self._apply_population_changes(kingdom, change)
        self._generate_trade_opportunities(kingdom.current_year)
        kingdom.enforce_invariants()

        return EconomyUpdate(
            tax_revenue=tax,
            maintenance_cost=maintenance,
            food_consumption=consumption,
            food_deficit=deficit,
            happiness_change=happiness_change,
            population_change=change.total_growth,
            gold_change=tax - maintenance + trade,
            inflation=self.inflation_rate,
        )

    def process_year(self, kingdom) -> EconomyUpdate:
        """Harvest first, then settle the year; the order matters for surplus detection."""
        harvest = self.calculate_harvest(kingdom)
        return self.update_economy(kingdom, harvest)

    def _sell_surplus(self, kingdom, consumption: float) -> None:
        sellable = math.floor((kingdom.resources.food - consumption) * 0.5)
        gold = math.floor(sellable * self.market_prices["food"])
        kingdom.ledger.credit("gold", gold, ECONOMY_SURPLUS_SALE)
        kingdom.ledger.debit("food", sellable, ECONOMY_SURPLUS_SALE)

    def _apply_famine(self, kingdom, deficit_pct: float) -> None:
        pop = kingdom.population
        loss = math.floor(pop.peasants * deficit_pct * 0.3)
        pop.peasants = max(0, pop.peasants - loss)
        kingdom.happiness = max(0.0, kingdom.happiness - deficit_pct * 30)

        disease = 0
        if kingdom.infrastructure.hospitals == 0 and self.rng.random() < deficit_pct:
            disease = math.floor(loss * 0.5)
            pop.peasants = max(0, pop.peasants - disease)
        logger.info("famine in %s: deficit %.0f%%, %d peasants lost (%d to disease)",
                    kingdom.name, deficit_pct * 100, loss + disease, disease)

    def calculate_maintenance_cost(self, kingdom) -> int:
        infra, military = kingdom.infrastructure, kingdom.military
        cost = sum(getattr(infra, k) * v for k, v in INFRASTRUCTURE_UPKEEP.items())
        cost += sum(getattr(military, k) * v for k, v in MILITARY_UPKEEP.items())
        cost += kingdom.population.headcount() * 0.01
        cost *= 1 + (self.difficulty - 1) * 0.2
        return math.floor(cost)

    def calculate_trade_income(self, kingdom) -> int:
        res, infra = kingdom.resources, kingdom.infrastructure
        exports = min(res.wood * 0.1, 500) + min(res.stone * 0.15, 750) + min(res.iron * 0.2, 1000)
        return math.floor(infra.markets * 100 + exports + infra.roads * 5)

    def _manage_debt(self, kingdom) -> None:
        res = kingdom.resources
        if res.debt <= 0:
            return
        interest = math.floor(res.debt * self.modifiers.debt_interest_rate)
        kingdom.ledger.credit("debt", interest, ECONOMY_DEBT)

        repayment = min(math.floor(res.gold * self.modifiers.debt_repayment_share), res.debt)
        if repayment > 0:
            kingdom.ledger.debit("gold", repayment, ECONOMY_DEBT)
            kingdom.ledger.debit("debt", repayment, ECONOMY_DEBT)
            if repayment > 1000:
                kingdom.happiness = min(100.0, kingdom.happiness + 2)

        if res.debt > 10000:
            kingdom.happiness = max(0.0, kingdom.happiness - 5)

    def _adjust_inflation(self, kingdom) -> None:
        gold_factor = kingdom.resources.gold / 100000
        production_factor = kingdom.infrastructure.farms + kingdom.infrastructure.mines
        stability_factor = kingdom.happiness / 100
        rate = (self.modifiers.base_inflation + gold_factor * 0.01
                - production_factor * 0.001 - stability_factor * 0.005)
        self.inflation_rate = clamp(rate, self.modifiers.min_inflation, self.modifiers.max_inflation)

        for key in self.market_prices:
            if key != "gold":
                self.market_prices[key] *= 1 + self.inflation_rate

    # ------------------------------------------------------------------ population

    def calculate_detailed_population_changes(self, kingdom) -> PopulationChange:
        food = kingdom.resources.food
        hospitals = kingdom.infrastructure.hospitals
        happiness_mod = kingdom.happiness / 100
        food_mod = 1.2 if food > 10000 else 1.1 if food > 5000 else 1.0
        health_mod = 1 + hospitals * 0.05 if hospitals > 0 else 0.9
        rate = self.modifiers.base_population_growth * happiness_mod * food_mod * health_mod

        pop = kingdom.population
        per_class = {
            cls.value: math.floor(getattr(pop, cls.value) * rate * profile.growth_weight)
            for cls, profile in DEFAULT_CLASSES.items()
        }
        return PopulationChange(total_growth=math.floor(pop.headcount() * rate), **per_class)

    def _apply_population_changes(self, kingdom, change: PopulationChange) -> None:
        for cls in DEFAULT_CLASSES:
            name = cls.value
            setattr(kingdom.population, name, getattr(kingdom.population, name) + getattr(change, name))

    # ------------------------------------------------------------------ trade

    def _generate_trade_opportunities(self, current_year: int) -> None:
        self.trade_opportunities = [
            o for o in self.trade_opportunities if o.expiration_year >= current_year
        ]
        if len(self.trade_opportunities) > self.modifiers.max_trade_opportunities:
            self.trade_opportunities.pop(0)

        if self.rng.random() < self.modifiers.trade_offer_chance:
            resource = choice(self.rng, TRADED_RESOURCES)
            self.trade_opportunities.append(TradeOpportunity(
                type="import" if self.rng.random() > 0.5 else "export",
                resource=resource,
                amount=math.floor(self.rng.random() * 1000) + 100,
                price_per_unit=self.market_prices[resource] * uniform(self.rng, 0.8, 1.2),
                expiration_year=current_year + math.floor(self.rng.random() * 3) + 1,
            ))

    def execute_trade(self, kingdom, index: int) -> bool:
        """Accept the trade offer at ``index``; ``False`` leaves everything untouched."""
        if index < 0 or index >= len(self.trade_opportunities):
            return False
        offer = self.trade_opportunities[index]
        total = offer.amount * offer.price_per_unit

        if offer.type == "import":
            if kingdom.resources.gold < total:
                return False
            kingdom.ledger.debit("gold", total, ECONOMY_TRADE)
            kingdom.ledger.credit(offer.resource, offer.amount, ECONOMY_TRADE)
        else:
            if getattr(kingdom.resources, offer.resource) < offer.amount:
                return False
            kingdom.ledger.debit(offer.resource, offer.amount, ECONOMY_TRADE)
            kingdom.ledger.credit("gold", total, ECONOMY_TRADE)

        del self.trade_opportunities[index]
        return True

    # ------------------------------------------------------------------ accessors

    def get_trade_opportunities(self) -> List[TradeOpportunity]:
        return list(self.trade_opportunities)

    def get_market_prices(self) -> Dict[str, float]:
        return dict(self.market_prices)

    def serialize(self) -> Dict[str, Any]:
        return {
            "difficulty": self.difficulty,
            "game_speed": self.game_speed,
            "inflation_rate": self.inflation_rate,
            "market_prices": dict(self.market_prices),
            "trade_opportunities": [asdict(o) for o in self.trade_opportunities],
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any], *,
                    rng: Optional[np.random.Generator] = None,
                    modifiers: Optional[GameModifiers] = None) -> "EconomySystem":
        economy = cls(
            difficulty=max(1, to_int(data.get("difficulty", 1), 1)),
            game_speed=to_float(data.get("game_speed", 1), 1.0),
            rng=rng,
            modifiers=modifiers,
        )
        economy.inflation_rate = to_float(data.get("inflation_rate"), economy.inflation_rate)
        for key, value in (data.get("market_prices") or {}).items():
            if key in RESOURCE_NAMES:
                economy.market_prices[key] = to_float(value, economy.market_prices[key])
        for raw in data.get("trade_opportunities") or []:
            if raw.get("type") not in ("import", "export") or raw.get("resource") not in TRADED_RESOURCES:
                logger.warning("deserialize: dropping malformed trade offer %r", raw)
                continue
            economy.trade_opportunities.append(TradeOpportunity(
                type=raw["type"],
                resource=raw["resource"],
                amount=to_int(raw.get("amount"), 0),
                price_per_unit=to_float(raw.get("price_per_unit"), 0.0),
                expiration_year=to_int(raw.get("expiration_year"), 0),
            ))
        return economy


__all__ = [
    "CLIMATE_MODIFIERS",
    "BASE_MARKET_PRICES",
    "HarvestResult",
    "EconomyUpdate",
    "PopulationChange",
    "TradeOpportunity",
    "EconomySystem",
]
