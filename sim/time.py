"""Minimal deterministic month arithmetic for the simulation.

The simulation advances in whole months; days are never modelled. All
functions operate purely on supplied arguments and return new
``(year, month)`` tuples, avoiding any global state.
"""

from __future__ import annotations

from typing import Tuple

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MONTHS_PER_YEAR = 12

VALID_SCALES = {"month", "year"}
"""Recognised time step scales."""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_month(month: int) -> None:
    if month < 1 or month > MONTHS_PER_YEAR:
        raise ValueError(f"month must be in 1..12, got {month!r}")


# ---------------------------------------------------------------------------
# Date utilities
# ---------------------------------------------------------------------------


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Advance ``(year, month)`` by ``months`` months.

    Parameters
    ----------
    year, month:
        Starting date. ``month`` must be in ``1..12``.
    months:
        Number of months to add. Must be ``>=0``.
    """

    _check_month(month)
    if months < 0:
        raise ValueError("months must be >= 0")

    total = year * MONTHS_PER_YEAR + (month - 1) + months
    return total // MONTHS_PER_YEAR, total % MONTHS_PER_YEAR + 1


def next_month(year: int, month: int) -> Tuple[int, int]:
    """Return the month following ``(year, month)``; December rolls over."""

    return add_months(year, month, 1)


def months_between(start: Tuple[int, int], end: Tuple[int, int]) -> int:
    """Return the signed number of months from ``start`` to ``end``."""

    (y0, m0), (y1, m1) = start, end
    _check_month(m0)
    _check_month(m1)
    return (y1 - y0) * MONTHS_PER_YEAR + (m1 - m0)


def scale_to_months(scale: str) -> int:
    """Convert a time ``scale`` to its length in months."""

    if scale not in VALID_SCALES:
        raise ValueError(f"invalid scale: {scale!r}")
    return 1 if scale == "month" else MONTHS_PER_YEAR
