"""Random source used by every stochastic step of the simulation."""

from __future__ import annotations

from typing import Optional

import numpy as np


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Return a ``numpy`` generator.

    ``seed=None`` draws fresh entropy from the operating system so runs are
    not reproducible; pass an integer to fix the sequence.
    """

    return np.random.default_rng(seed)


def choice(rng: np.random.Generator, options):
    """Return one element of ``options`` picked uniformly."""

    if not options:
        raise ValueError("options must not be empty")
    return options[int(rng.integers(0, len(options)))]


def uniform(rng: np.random.Generator, low: float, high: float) -> float:
    """Return a float drawn uniformly from ``[low, high)``."""

    return float(low + rng.random() * (high - low))


__all__ = ["make_rng", "choice", "uniform"]
