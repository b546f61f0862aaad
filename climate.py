"""
Seasons, weather, long-run climate change, natural disasters and renewable
resource reserves for one kingdom.

The engine is advanced by :meth:`ClimateSystem.update_month`; everything
else is a lookup or a narrowly scoped mutation (``harvest_resource``,
``resolve_disaster``).  Weather has no persistence from one month to the
next; it is redrawn every month from a season-dependent distribution
whose extreme branches scale with the current extreme-weather frequency.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional
import logging
import math

import numpy as np

from modifiers import MODIFIERS, GameModifiers
from sim.history import RingBuffer
from sim.rng import choice, make_rng
from sim.safe_parse import to_bool, to_float, to_int
from sim.time import next_month
from time_model import AUTUMN, SEASONS, SPRING, SUMMER, WINTER, season_for_month

logger = logging.getLogger(__name__)

WEATHER_TYPES = (
    "clear", "cloudy", "rain", "storm", "snow", "fog",
    "blizzard", "drought", "heatwave", "cold_snap",
)
_WEATHER_INDEX = {w: i for i, w in enumerate(WEATHER_TYPES)}

# Weather picked when a forecast misses
FORECAST_FALLBACK_WEATHER = ("clear", "cloudy", "rain", "storm", "snow", "fog")

DISASTER_TYPES = (
    "drought", "flood", "earthquake", "wildfire", "plague", "famine",
    "storm", "blizzard", "hurricane", "hailstorm", "locust_plague",
    "tornado", "heatwave", "cold_snap",
)

SEASONAL_DISASTERS: Dict[str, tuple] = {
    SPRING: ("flood", "storm", "tornado"),
    SUMMER: ("drought", "wildfire", "heatwave", "locust_plague", "hailstorm"),
    AUTUMN: ("storm", "hurricane", "flood"),
    WINTER: ("blizzard", "cold_snap", "earthquake"),
}

RESOURCE_TYPES = ("wood", "stone", "iron", "fish", "game", "fertile_soil")

# Yearly regeneration per reserve; stone and iron never grow back
REGENERATION_RATES: Dict[str, float] = {
    "wood": 500.0,
    "stone": 0.0,
    "iron": 0.0,
    "fish": 1000.0,
    "game": 800.0,
    "fertile_soil": 50.0,
}

# Estimated precipitation in mm per weather type
PRECIPITATION: Dict[str, float] = {
    "clear": 0, "cloudy": 5, "rain": 30, "storm": 60, "snow": 25,
    "fog": 10, "blizzard": 40, "drought": 0, "heatwave": 0, "cold_snap": 5,
}


@dataclass(frozen=True)
class SeasonalEffects:
    food_production_modifier: float
    happiness_modifier: float
    disease_spread_modifier: float
    travel_speed_modifier: float
    building_cost_modifier: float
    military_efficiency_modifier: float


@dataclass(frozen=True)
class WeatherEffects:
    food_production: float
    happiness: float
    building_speed: float


SEASONAL_EFFECTS: Dict[str, SeasonalEffects] = {
    SPRING: SeasonalEffects(1.1, 1.1, 1.0, 1.0, 1.0, 1.0),
    SUMMER: SeasonalEffects(1.2, 1.2, 1.3, 1.1, 0.9, 1.1),
    AUTUMN: SeasonalEffects(1.3, 1.0, 1.1, 1.0, 1.0, 1.0),
    WINTER: SeasonalEffects(0.6, 0.8, 0.8, 0.7, 1.2, 0.8),
}

WEATHER_EFFECTS: Dict[str, WeatherEffects] = {
    "clear": WeatherEffects(1.0, 1.1, 1.0),
    "cloudy": WeatherEffects(0.95, 1.0, 1.0),
    "rain": WeatherEffects(1.1, 0.95, 0.9),
    "storm": WeatherEffects(0.7, 0.8, 0.6),
    "snow": WeatherEffects(0.8, 0.9, 0.7),
    "fog": WeatherEffects(0.9, 0.95, 0.95),
    "blizzard": WeatherEffects(0.5, 0.7, 0.5),
    "drought": WeatherEffects(0.3, 0.6, 1.0),
    "heatwave": WeatherEffects(0.5, 0.7, 0.8),
    "cold_snap": WeatherEffects(0.6, 0.75, 0.7),
}

WEATHER_DTYPE = [("year", np.int32), ("month", np.int8), ("weather", np.int8)]
TEMPERATURE_DTYPE = [("year", np.int32), ("temperature", np.float64)]


@dataclass
class NaturalDisaster:
    id: str
    type: str
    severity: int  # 1-10
    year: int
    month: int
    casualties: int
    economic_damage: int  # gold
    crop_damage: int  # food units
    buildings_damaged: int
    affected_regions: List[str] = field(default_factory=list)
    resolved: bool = False


@dataclass
class ClimateChangeData:
    global_temperature: float = 0.0  # °C above baseline
    co2_level: float = 280.0  # ppm
    sea_level: float = 0.0  # m above baseline
    extreme_weather_frequency: float = 1.0  # disaster chance multiplier
    desertification_rate: float = 0.01
    glacier_melting: float = 0.0  # % melted


@dataclass
class ResourceState:
    type: str
    current_amount: float
    max_amount: float
    depletion_rate: float = 0.0
    regeneration_rate: float = 0.0
    depleted: bool = False
    last_harvest_year: int = 0


@dataclass
class WeatherForecast:
    year: int
    month: int
    predicted_weather: str
    disaster_risk: float
    accuracy: float
    predicted_temperature: float
    predicted_precipitation: float


def get_seasonal_effects(season: str) -> SeasonalEffects:
    try:
        return SEASONAL_EFFECTS[season]
    except KeyError:
        raise ValueError(f"unknown season {season!r}") from None


def get_weather_effects(weather: str) -> WeatherEffects:
    return WEATHER_EFFECTS.get(weather, WEATHER_EFFECTS["clear"])


class ClimateSystem:
    """Climate state of one kingdom, advanced one month at a time."""

    def __init__(self, *, rng: Optional[np.random.Generator] = None,
                 modifiers: Optional[GameModifiers] = None) -> None:
        self.rng = rng if rng is not None else make_rng()
        self.modifiers = modifiers if modifiers is not None else MODIFIERS

        self.current_season = SPRING
        self.current_weather = "clear"
        self.climate_change = ClimateChangeData(co2_level=self.modifiers.co2_baseline)
        self.disasters: Dict[str, NaturalDisaster] = {}
        self._disaster_seq = 0
        self.resource_states: Dict[str, ResourceState] = {
            kind: ResourceState(
                type=kind,
                current_amount=self.modifiers.resource_pool_size,
                max_amount=self.modifiers.resource_pool_size,
                regeneration_rate=REGENERATION_RATES[kind],
            )
            for kind in RESOURCE_TYPES
        }
        self.weather_history = RingBuffer(self.modifiers.weather_history_size, WEATHER_DTYPE)
        self.temperature_history = RingBuffer(self.modifiers.temperature_history_size,
                                              TEMPERATURE_DTYPE)
        self.forecasting_enabled = False
        self.forecast_accuracy = 0.5

    # ------------------------------------------------------------------ tick

    def update_month(self, year: int, month: int, industrialization_level: float) -> List[NaturalDisaster]:
        """Advance one month.

        Returns the disasters generated this month (usually none) so a
        driver can apply their damage.
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month!r}")
        self.current_season = season_for_month(month)
        self.current_weather = self._generate_weather(month)
        self.weather_history.append(year, month, _WEATHER_INDEX[self.current_weather])

        self._update_climate_change(year, month, industrialization_level)
        self._regenerate_resources(year)
        disasters = self._check_for_disasters(year, month)
        self._prune_disasters()
        return disasters

    def _generate_weather(self, month: int) -> str:
        season = season_for_month(month)
        r = self.rng.random()
        ext = self.climate_change.extreme_weather_frequency

        if season == WINTER:
            if r < 0.1 * ext:
                return "blizzard"
            if r < 0.3:
                return "snow"
            if r < 0.5:
                return "cold_snap"
            if r < 0.7:
                return "cloudy"
            return "clear"
        if season == SUMMER:
            if r < 0.05 * ext:
                return "heatwave"
            if r < 0.15 * ext:
                return "drought"
            if r < 0.25:
                return "storm"
            if r < 0.4:
                return "cloudy"
            return "clear"
        if r < 0.1 * ext:
            return "storm"
        if r < 0.35:
            return "rain"
        if r < 0.6:
            return "cloudy"
        return "clear"

    def _update_climate_change(self, year: int, month: int, industrialization_level: float) -> None:
        cc = self.climate_change
        if year > self.modifiers.industrial_threshold_year:
            co2_increase = 0.5 + (industrialization_level / 100) * 2
            cc.co2_level += co2_increase / 12
        else:
            cc.co2_level += 0.01 / 12

        deviation = cc.co2_level - self.modifiers.co2_baseline
        cc.global_temperature = (deviation / self.modifiers.co2_baseline) * 2
        cc.sea_level = cc.global_temperature * 0.3
        cc.extreme_weather_frequency = 1.0 + cc.global_temperature * 0.2
        cc.glacier_melting = min(100.0, cc.global_temperature * 10)
        cc.desertification_rate = 0.01 + cc.global_temperature * 0.005

        if month == 12:
            self.temperature_history.append(year, cc.global_temperature)

    def _regenerate_resources(self, year: int) -> None:
        climate_impact = max(0.1, 1.0 - self.climate_change.global_temperature * 0.1)
        for state in self.resource_states.values():
            if not state.depleted and state.current_amount < state.max_amount:
                regen = (state.regeneration_rate / 12) * climate_impact
                state.current_amount = min(state.max_amount, state.current_amount + regen)
            elif (state.depleted and state.regeneration_rate > 0
                  and year - state.last_harvest_year > self.modifiers.recovery_years):
                state.depleted = False
                state.current_amount = state.max_amount * self.modifiers.recovery_fraction
                logger.info("resource %s recovered in year %s", state.type, year)

    def _check_for_disasters(self, year: int, month: int) -> List[NaturalDisaster]:
        chance = self.modifiers.disaster_base_chance * self.climate_change.extreme_weather_frequency
        if self.rng.random() >= chance:
            return []

        disaster = self._generate_disaster(year, month)
        self.disasters[disaster.id] = disaster
        logger.info("%s (severity %d) struck in %d/%d", disaster.type, disaster.severity,
                    year, month)
        return [disaster]

    def _generate_disaster(self, year: int, month: int) -> NaturalDisaster:
        kind = choice(self.rng, SEASONAL_DISASTERS[season_for_month(month)])
        severity = 1 + math.floor(self.rng.random() * 10)
        self._disaster_seq += 1
        return NaturalDisaster(
            id=f"disaster-{year}-{month}-{self._disaster_seq}",
            type=kind,
            severity=severity,
            year=year,
            month=month,
            casualties=math.floor(severity * 100 * (1 + self.rng.random())),
            economic_damage=math.floor(severity * 1000 * (1 + self.rng.random())),
            crop_damage=math.floor(severity * 500 * (1 + self.rng.random())),
            buildings_damaged=math.floor(severity * 10 * self.rng.random()),
        )

    def _prune_disasters(self) -> None:
        if len(self.disasters) <= self.modifiers.max_disasters:
            return
        resolved = [d for d in self.disasters.values() if d.resolved]
        keep = self.modifiers.kept_resolved_disasters
        for d in resolved[:max(0, len(resolved) - keep)]:
            del self.disasters[d.id]

    # ------------------------------------------------------------------ reserves

    def harvest_resource(self, resource_type: str, amount: float, year: int) -> float:
        """Take up to ``amount`` from a reserve; returns what was actually taken."""
        state = self.resource_states.get(resource_type)
        if state is None or amount <= 0:
            return 0
        taken = min(amount, state.current_amount)
        state.current_amount -= taken
        state.last_harvest_year = year
        state.depletion_rate += taken / 12

        if not state.depleted and state.current_amount < state.max_amount * self.modifiers.depletion_threshold:
            state.depleted = True
            logger.info("resource %s depleted in year %s", resource_type, year)
        return taken

    # ------------------------------------------------------------------ forecast

    def enable_forecasting(self, accuracy: float = 0.5) -> None:
        self.forecasting_enabled = True
        self.forecast_accuracy = min(1.0, max(0.1, accuracy))

    def create_forecast(self, year: int, month: int, tech_level: float) -> Optional[WeatherForecast]:
        """Forecast next month's weather; ``None`` until forecasting is enabled."""
        if not self.forecasting_enabled:
            return None

        accuracy = min(self.modifiers.max_forecast_accuracy,
                       self.forecast_accuracy + (tech_level / 100) * 0.3)
        next_year, following = next_month(year, month)
        actual = self._generate_weather(following)
        if self.rng.random() < accuracy:
            predicted = actual
        else:
            predicted = choice(self.rng, FORECAST_FALLBACK_WEATHER)

        return WeatherForecast(
            year=next_year,
            month=following,
            predicted_weather=predicted,
            disaster_risk=min(1.0, self.climate_change.extreme_weather_frequency
                              * self.modifiers.disaster_base_chance),
            accuracy=accuracy,
            predicted_temperature=self.climate_change.global_temperature,
            predicted_precipitation=PRECIPITATION.get(predicted, 0),
        )

    # ------------------------------------------------------------------ accessors

    def get_current_season(self) -> str:
        return self.current_season

    def get_current_weather(self) -> str:
        return self.current_weather

    def get_climate_change(self) -> ClimateChangeData:
        return replace(self.climate_change)

    def get_disasters(self) -> List[NaturalDisaster]:
        return list(self.disasters.values())

    def get_active_disasters(self) -> List[NaturalDisaster]:
        return [d for d in self.disasters.values() if not d.resolved]

    def resolve_disaster(self, disaster_id: str) -> bool:
        disaster = self.disasters.get(disaster_id)
        if disaster is None:
            return False
        disaster.resolved = True
        return True

    def get_resource_state(self, resource_type: str) -> Optional[ResourceState]:
        return self.resource_states.get(resource_type)

    def get_all_resource_states(self) -> List[ResourceState]:
        return list(self.resource_states.values())

    def get_weather_history(self) -> List[Dict[str, Any]]:
        out = self.weather_history.to_records()
        for rec in out:
            rec["weather"] = WEATHER_TYPES[rec["weather"]]
        return out

    def get_temperature_history(self) -> List[Dict[str, Any]]:
        return self.temperature_history.to_records()

    # ------------------------------------------------------------------ snapshots

    def serialize(self) -> Dict[str, Any]:
        return {
            "current_season": self.current_season,
            "current_weather": self.current_weather,
            "disasters": [asdict(d) for d in self.disasters.values()],
            "disaster_seq": self._disaster_seq,
            "climate_change": asdict(self.climate_change),
            "resource_states": [asdict(s) for s in self.resource_states.values()],
            "weather_history": self.get_weather_history(),
            "temperature_history": self.get_temperature_history(),
            "forecasting_enabled": self.forecasting_enabled,
            "forecast_accuracy": self.forecast_accuracy,
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any], *,
                    rng: Optional[np.random.Generator] = None,
                    modifiers: Optional[GameModifiers] = None) -> "ClimateSystem":
        system = cls(rng=rng, modifiers=modifiers)

        season = data.get("current_season", SPRING)
        if season not in SEASONS:
            raise ValueError(f"invalid season {season!r}")
        weather = data.get("current_weather", "clear")
        if weather not in _WEATHER_INDEX:
            raise ValueError(f"invalid weather {weather!r}")
        system.current_season = season
        system.current_weather = weather

        cc = data.get("climate_change") or {}
        system.climate_change = ClimateChangeData(**{
            name: to_float(cc.get(name), default)
            for name, default in asdict(system.climate_change).items()
        })

        for raw in data.get("resource_states") or []:
            state = system.resource_states.get(raw.get("type"))
            if state is None:
                logger.warning("deserialize: unknown resource state %r", raw.get("type"))
                continue
            state.current_amount = to_float(raw.get("current_amount"), state.current_amount)
            state.max_amount = to_float(raw.get("max_amount"), state.max_amount)
            state.depletion_rate = to_float(raw.get("depletion_rate"), 0.0)
            state.regeneration_rate = to_float(raw.get("regeneration_rate"), state.regeneration_rate)
            state.depleted = to_bool(raw.get("depleted"), False)
            state.last_harvest_year = to_int(raw.get("last_harvest_year"), 0)

        for raw in data.get("disasters") or []:
            if raw.get("type") not in DISASTER_TYPES or not raw.get("id"):
                logger.warning("deserialize: dropping malformed disaster %r", raw)
                continue
            disaster = NaturalDisaster(
                id=str(raw["id"]),
                type=raw["type"],
                severity=to_int(raw.get("severity"), 1),
                year=to_int(raw.get("year"), 0),
                month=to_int(raw.get("month"), 1),
                casualties=to_int(raw.get("casualties"), 0),
                economic_damage=to_int(raw.get("economic_damage"), 0),
                crop_damage=to_int(raw.get("crop_damage"), 0),
                buildings_damaged=to_int(raw.get("buildings_damaged"), 0),
                affected_regions=list(raw.get("affected_regions") or []),
                resolved=to_bool(raw.get("resolved"), False),
            )
            system.disasters[disaster.id] = disaster
        system._disaster_seq = to_int(data.get("disaster_seq"), len(system.disasters))

        for rec in data.get("weather_history") or []:
            kind = rec.get("weather")
            if kind not in _WEATHER_INDEX:
                logger.warning("deserialize: skipping weather record %r", rec)
                continue
            system.weather_history.append(to_int(rec.get("year")), to_int(rec.get("month"), 1),
                                          _WEATHER_INDEX[kind])
        for rec in data.get("temperature_history") or []:
            system.temperature_history.append(to_int(rec.get("year")),
                                              to_float(rec.get("temperature")))

        system.forecasting_enabled = to_bool(data.get("forecasting_enabled"), False)
        system.forecast_accuracy = to_float(data.get("forecast_accuracy"), 0.5)
        return system


__all__ = [
    "WEATHER_TYPES",
    "DISASTER_TYPES",
    "RESOURCE_TYPES",
    "SEASONAL_EFFECTS",
    "WEATHER_EFFECTS",
    "NaturalDisaster",
    "ClimateChangeData",
    "ResourceState",
    "WeatherForecast",
    "SeasonalEffects",
    "WeatherEffects",
    "get_seasonal_effects",
    "get_weather_effects",
    "ClimateSystem",
]
