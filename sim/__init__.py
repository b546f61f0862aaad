"""
Convenience re-exports so drivers can `from sim import Kingdom, Simulation`.
The engines live in top-level modules; imports are resolved lazily.
"""
from typing import Any

__all__ = ["Kingdom", "KingdomConfig", "EconomySystem", "ClimateSystem", "Simulation"]


def __getattr__(name: str) -> Any:
    # Lazy import to avoid a circular dependency during package import.
    if name in __all__:
        from kingdom import Kingdom, KingdomConfig  # local import
        from economy import EconomySystem
        from climate import ClimateSystem
        from .loop import Simulation
        globals().update({
            "Kingdom": Kingdom,
            "KingdomConfig": KingdomConfig,
            "EconomySystem": EconomySystem,
            "ClimateSystem": ClimateSystem,
            "Simulation": Simulation,
        })
        return globals()[name]
    raise AttributeError(f"module 'sim' has no attribute {name!r}")
