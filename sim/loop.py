from __future__ import annotations

"""Reference driver that ticks one kingdom with its economy and climate engines."""

from typing import Any, Dict, List, Optional
import logging

import numpy as np

from climate import ClimateSystem, NaturalDisaster
from economy import EconomySystem
from kingdom import EXTRACTED_RESOURCES, EffectDelta, Kingdom
from modifiers import GameModifiers
from time_model import Calendar

from .rng import make_rng
from .time import months_between, scale_to_months

logger = logging.getLogger(__name__)


def industrialization_level(kingdom: Kingdom) -> float:
    """Industrial output in ``[0, 100]`` from workshops, mines and technology."""
    infra = kingdom.infrastructure
    raw = (infra.workshops * 5 + infra.mines * 3
           + kingdom.stats.technological_level * 0.5)
    return float(np.clip(raw, 0.0, 100.0))


def disaster_effects(disaster: NaturalDisaster) -> EffectDelta:
    """Translate a climate disaster into damage on the kingdom."""
    return EffectDelta(
        resources={"gold": -disaster.economic_damage, "food": -disaster.crop_damage},
        happiness=-float(disaster.severity),
        population={"peasants": -disaster.casualties},
        # every ten damaged buildings cost one farm
        infrastructure={"farms": -(disaster.buildings_damaged // 10)},
    )


class Simulation:
    """Monthly driver for a single kingdom.

    Order per month: climate ``update_month`` then kingdom
    ``process_month``; in December also kingdom ``process_year`` followed
    by economy ``process_year``.

    Parameters
    ----------
    kingdom:
        The kingdom to advance in place.
    authority:
        Ledger preset deciding which engine owns which resource
        (``"additive"`` or ``"exclusive"``).  ``None`` keeps the preset the
        kingdom already carries.
    draw_from_reserves:
        When ``True`` the kingdom's yearly wood, stone and iron output is
        taken from the climate engine's reserves and capped by them.
    seed:
        Seeds the economy and climate engines; the kingdom keeps its own
        generator.
    """

    def __init__(self, kingdom: Kingdom, *,
                 economy: Optional[EconomySystem] = None,
                 climate: Optional[ClimateSystem] = None,
                 authority: Optional[str] = None,
                 draw_from_reserves: bool = False,
                 apply_disasters: bool = True,
                 seed: Optional[int] = None,
                 modifiers: Optional[GameModifiers] = None) -> None:
        self.kingdom = kingdom
        rng = make_rng(seed)
        mods = modifiers if modifiers is not None else kingdom.modifiers
        self.economy = economy if economy is not None else EconomySystem(
            kingdom.difficulty, rng=rng, modifiers=mods)
        self.climate = climate if climate is not None else ClimateSystem(rng=rng, modifiers=mods)
        self.calendar = Calendar(year=kingdom.current_year, month=1)
        self.start = (self.calendar.year, self.calendar.month)
        self.apply_disasters = apply_disasters
        if authority is not None:
            self.kingdom.ledger.set_authority(authority)
        if draw_from_reserves:
            self.kingdom.extraction_hook = self._draw_from_reserves

    @property
    def elapsed_months(self) -> int:
        return months_between(self.start, (self.calendar.year, self.calendar.month))

    def _draw_from_reserves(self, resource: str, amount: float) -> float:
        if resource not in EXTRACTED_RESOURCES:
            return amount
        return self.climate.harvest_resource(resource, amount, self.calendar.year)

    def step_month(self) -> Optional[Dict[str, Any]]:
        """Advance one month; returns a yearly report after December."""
        year, month = self.calendar.year, self.calendar.month
        disasters = self.climate.update_month(year, month, industrialization_level(self.kingdom))
        if self.apply_disasters:
            for disaster in disasters:
                self.kingdom.apply_effects(disaster_effects(disaster))

        self.kingdom.process_month()

        report = None
        if month == 12:
            self.kingdom.process_year()
            update = self.economy.process_year(self.kingdom)
            report = {
                "year": year,
                "summary": self.kingdom.get_summary(),
                "gold": self.kingdom.resources.gold,
                "food": self.kingdom.resources.food,
                "happiness": self.kingdom.happiness,
                "economy": update,
                "temperature": self.climate.climate_change.global_temperature,
                "overlapping_resources": self.kingdom.ledger.overlapping_resources(),
            }
            logger.debug("year %s closed: %s", year, report["summary"])
        self.calendar.advance_month()
        return report

    def advance(self, steps: int = 1, scale: str = "month") -> List[Dict[str, Any]]:
        """Advance ``steps`` units of ``scale`` ("month" or "year")."""
        return self.run(max(0, int(steps)) * scale_to_months(scale))

    def run(self, months: int) -> List[Dict[str, Any]]:
        """Advance ``months`` months and return one report per completed year."""
        reports = []
        for _ in range(months):
            report = self.step_month()
            if report is not None:
                reports.append(report)
        return reports


__all__ = ["Simulation", "industrialization_level", "disaster_effects"]
