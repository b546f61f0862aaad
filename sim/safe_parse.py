from __future__ import annotations
"""Utility helpers for safely coercing snapshot values.

Kingdom and climate snapshots are plain dictionaries produced by an
external persistence layer.  These helpers attempt to coerce a value to
:class:`int`, :class:`float` or :class:`bool` and fall back to a provided
default when the value cannot be interpreted.  A warning is logged
whenever the coercion fails so callers can diagnose malformed saves
without the simulation crashing.
"""

from typing import Any
import math
import logging

logger = logging.getLogger(__name__)


def to_int(value: Any, default: int = 0) -> int:
    """Coerce ``value`` to ``int``.

    Finite floats are truncated.  Strings are stripped and parsed when
    they look like integers.  Anything else triggers a warning and
    ``default`` is returned instead.
    """
    # Fast path for normal ints (but not booleans which are ints too)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if s and (s.isdigit() or (s[0] in {"+", "-"} and s[1:].isdigit())):
            return int(s)
    if value is None:
        return default
    logger.warning("to_int: coercing %r to default %r", value, default)
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to ``float``; non finite or invalid input yields ``default``."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        f = float(value)
        if math.isfinite(f):
            return f
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            f = math.nan
        if math.isfinite(f):
            return f
    elif value is None:
        return default
    logger.warning("to_float: coercing %r to default %r", value, default)
    return default


def to_bool(value: Any, default: bool = False) -> bool:
    """Coerce ``value`` to ``bool``; accepts bools, 0/1 and ``"true"``/``"false"``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    if value is None:
        return default
    logger.warning("to_bool: coercing %r to default %r", value, default)
    return default


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Return ``value`` limited to ``[low, high]``."""
    return max(low, min(high, value))
