"""Tweakable simulation parameters.

Balance values that are shared by the kingdom, economy and climate
engines.  The module automatically loads overrides from
``balance/modifiers.json`` if the file exists; otherwise the hard coded
defaults below are used.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)


@dataclass
class GameModifiers:
    """Central store for values that affect core simulation mechanics.

    Events or policies can modify these numbers at runtime to globally
    influence the systems that consume them.
    """

    # Kingdom upkeep
    infrastructure_decay_chance: float = 0.1
    corruption_chance: float = 0.1
    corruption_stability_threshold: float = 60.0
    corruption_share: float = 0.1
    road_target: int = 5
    road_stone_cost: float = 200.0
    emigration_threshold: float = 40.0
    immigration_threshold: float = 80.0
    winter_wood_threshold: float = 1000.0
    autumn_food_cap: float = 50000.0

    # Economy
    base_inflation: float = 0.02
    min_inflation: float = 0.001
    max_inflation: float = 0.1
    debt_interest_rate: float = 0.1
    debt_repayment_share: float = 0.1
    trade_offer_chance: float = 0.3
    max_trade_opportunities: int = 5
    famine_threshold: float = 0.3
    surplus_sale_threshold: float = 0.1
    base_population_growth: float = 0.01

    # Climate
    disaster_base_chance: float = 0.01
    industrial_threshold_year: int = 1800
    co2_baseline: float = 280.0
    depletion_threshold: float = 0.05
    recovery_years: int = 50
    recovery_fraction: float = 0.1
    max_forecast_accuracy: float = 0.95
    resource_pool_size: float = 100000.0

    # Bounded histories
    weather_history_size: int = 120
    temperature_history_size: int = 200
    max_disasters: int = 100
    kept_resolved_disasters: int = 50


# Global modifiers instance used throughout the codebase
MODIFIERS = GameModifiers()


def _balance_path(default_path: Optional[str] = None) -> str:
    """Return path to the modifiers balance file."""

    if default_path is not None:
        return default_path
    return os.path.join(os.path.dirname(__file__), "balance", "modifiers.json")


def overrides_from(data: Dict[str, Any], base: Optional[GameModifiers] = None) -> GameModifiers:
    """Return a copy of ``base`` with the numeric fields in ``data`` applied.

    Unknown keys and values of the wrong type are skipped with a warning.
    """

    base = base if base is not None else GameModifiers()
    known = {f.name: f.type for f in fields(GameModifiers)}
    changes: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("load_balance: ignoring unknown key %r", key)
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("load_balance: ignoring non-numeric %s=%r", key, value)
            continue
        current = getattr(base, key)
        changes[key] = int(value) if isinstance(current, int) else float(value)
    return replace(base, **changes)


def load_balance(path: Optional[str] = None) -> GameModifiers:
    """Load balance data from ``balance/modifiers.json`` if available.

    The loaded values replace the corresponding fields of
    :data:`MODIFIERS` in place, so every engine built with the default
    modifiers picks them up.
    """

    fn = _balance_path(path)
    try:
        with open(fn, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return MODIFIERS
    if not isinstance(data, dict):
        logger.warning("load_balance: %s does not contain an object", fn)
        return MODIFIERS

    loaded = overrides_from(data, MODIFIERS)
    for f in fields(GameModifiers):
        setattr(MODIFIERS, f.name, getattr(loaded, f.name))
    return MODIFIERS


# Load balance at import time so callers get configured defaults.
load_balance()


__all__ = ["GameModifiers", "MODIFIERS", "load_balance", "overrides_from"]
