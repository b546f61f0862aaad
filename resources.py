"""Resource ledger shared by the kingdom, economy and climate engines.

All three engines move the same liquid resources (food, gold, ...).  They
do so through one :class:`ResourceLedger` per kingdom so every change is
tagged with the source that produced it.  An authority policy decides
which sources may actually change which resource; contributions from a
source without authority are journaled but not applied.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, FrozenSet, List, Mapping, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

# --- Constants -----------------------------------------------------------------

RESOURCE_NAMES: Tuple[str, ...] = (
    "gold", "food", "wood", "stone", "iron", "luxury_goods", "debt", "treasury",
)

# Debt is the only resource allowed to stay unclamped.
UNCLAMPED = frozenset({"debt"})

# Entries kept per tick; older ones drop off when no tick boundary clears them.
MAX_JOURNAL_ENTRIES = 10_000

# Starting stock multipliers per climate (gold, food, wood, stone, iron)
CLIMATE_RESOURCE_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "temperate": {"food": 1.2, "wood": 1.1, "stone": 1.0, "iron": 1.0, "gold": 1.0},
    "arid": {"food": 0.6, "wood": 0.5, "stone": 1.3, "iron": 1.1, "gold": 1.2},
    "cold": {"food": 0.8, "wood": 1.3, "stone": 1.1, "iron": 1.2, "gold": 1.1},
    "tropical": {"food": 1.3, "wood": 1.4, "stone": 0.8, "iron": 0.9, "gold": 0.9},
    "mountainous": {"food": 0.7, "wood": 0.9, "stone": 1.5, "iron": 1.4, "gold": 1.3},
    "coastal": {"food": 1.1, "wood": 1.0, "stone": 1.0, "iron": 1.0, "gold": 1.1},
}

# --- Contribution sources --------------------------------------------------------

KINGDOM_PRODUCTION = "kingdom.production"
KINGDOM_CONSUMPTION = "kingdom.consumption"
KINGDOM_TAXES = "kingdom.taxes"
KINGDOM_UPKEEP = "kingdom.upkeep"
KINGDOM_ACTIONS = "kingdom.actions"
KINGDOM_SEASON = "kingdom.season"
ECONOMY_HARVEST = "economy.harvest"
ECONOMY_TAXES = "economy.taxes"
ECONOMY_MAINTENANCE = "economy.maintenance"
ECONOMY_TRADE = "economy.trade"
ECONOMY_SURPLUS_SALE = "economy.surplus_sale"
ECONOMY_DEBT = "economy.debt"
CLIMATE_DISASTER = "climate.disaster"
EXTERNAL_EFFECT = "external.effect"

# --- Authority presets -----------------------------------------------------------

# Reference balance: every source applies, the three engines stack.
ADDITIVE: Mapping[str, FrozenSet[str]] = {}

# The kingdom's own production, taxes and upkeep are authoritative; the
# economy engine's harvest food and its tax/maintenance gold duplicate
# them and are only journaled.
EXCLUSIVE: Mapping[str, FrozenSet[str]] = {
    "food": frozenset({ECONOMY_HARVEST}),
    "gold": frozenset({ECONOMY_TAXES, ECONOMY_MAINTENANCE}),
}

AUTHORITY_PRESETS: Dict[str, Mapping[str, FrozenSet[str]]] = {
    "additive": ADDITIVE,
    "exclusive": EXCLUSIVE,
}


@dataclass(frozen=True)
class LedgerEntry:
    tick: str
    resource: str
    amount: float  # signed; credits positive, debits negative
    source: str
    applied: bool


class ResourceLedger:
    """Single mutation path for a kingdom's liquid resources.

    Parameters
    ----------
    owner:
        Object exposing a ``resources`` attribute (normally the kingdom).
        The attribute is looked up on every call so replacing the
        resources record keeps the ledger bound to the live state.
    authority:
        Name of a preset in :data:`AUTHORITY_PRESETS` or a mapping from
        resource name to the sources that are *not* allowed to move it.
    max_entries:
        Journal capacity; the oldest entries are dropped once it is full.
    """

    def __init__(self, owner, authority: str | Mapping[str, FrozenSet[str]] = "additive",
                 max_entries: int = MAX_JOURNAL_ENTRIES) -> None:
        self._owner = owner
        self._tick = "init"
        self._journal: Deque[LedgerEntry] = deque(maxlen=max_entries)
        self.set_authority(authority)

    # ------------------------------------------------------------------ policy

    def set_authority(self, authority: str | Mapping[str, FrozenSet[str]]) -> None:
        if isinstance(authority, str):
            if authority not in AUTHORITY_PRESETS:
                raise ValueError(f"unknown authority preset {authority!r}")
            self.authority_name = authority
            authority = AUTHORITY_PRESETS[authority]
        else:
            self.authority_name = "custom"
        self._suppressed = {k: frozenset(v) for k, v in authority.items()}

    def is_authoritative(self, resource: str, source: str) -> bool:
        return source not in self._suppressed.get(resource, frozenset())

    # --------------------------------------------------------------- mutation

    def _check(self, resource: str) -> None:
        if resource not in RESOURCE_NAMES:
            raise KeyError(f"unknown resource {resource!r}")

    def _record(self, resource: str, amount: float, source: str, applied: bool) -> None:
        self._journal.append(LedgerEntry(self._tick, resource, amount, source, applied))
        if not applied:
            logger.debug("ledger[%s]: suppressed %+.1f %s from %s",
                         self._tick, amount, resource, source)

    def credit(self, resource: str, amount: float, source: str) -> float:
        """Add ``amount`` of ``resource``; returns the amount actually applied."""
        self._check(resource)
        if amount == 0:
            return 0
        applied = self.is_authoritative(resource, source)
        self._record(resource, amount, source, applied)
        if not applied:
            return 0
        res = self._owner.resources
        setattr(res, resource, getattr(res, resource) + amount)
        if resource not in UNCLAMPED and getattr(res, resource) < 0:
            setattr(res, resource, 0)
        return amount

    def debit(self, resource: str, amount: float, source: str) -> float:
        """Remove up to ``amount`` of ``resource``, flooring at zero.

        Returns the amount actually removed.
        """
        self._check(resource)
        if amount == 0:
            return 0
        if not self.is_authoritative(resource, source):
            self._record(resource, -amount, source, False)
            return 0
        res = self._owner.resources
        current = getattr(res, resource)
        if resource in UNCLAMPED:
            removed = amount
        else:
            removed = min(amount, max(0, current))
        setattr(res, resource, current - removed)
        self._record(resource, -removed, source, True)
        return removed

    # ---------------------------------------------------------------- journal

    def begin_tick(self, label: str) -> None:
        """Start a fresh journal for the tick named ``label``."""
        if self._journal:
            logger.debug("ledger[%s]: %s", self._tick, self.totals_by_source())
        self._tick = label
        self._journal.clear()

    @property
    def tick(self) -> str:
        return self._tick

    def journal(self, resource: Optional[str] = None) -> List[LedgerEntry]:
        return [e for e in self._journal if resource is None or e.resource == resource]

    def totals_by_source(self, resource: Optional[str] = None,
                         include_suppressed: bool = False) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for e in self.journal(resource):
            if e.applied or include_suppressed:
                out[e.source] = out.get(e.source, 0) + e.amount
        return out

    def overlapping_resources(self) -> Dict[str, List[str]]:
        """Resources credited by more than one engine during the current tick."""
        producers: Dict[str, set] = {}
        for e in self._journal:
            if e.applied and e.amount > 0:
                engine = e.source.split(".", 1)[0]
                producers.setdefault(e.resource, set()).add(engine)
        return {r: sorted(s) for r, s in producers.items() if len(s) > 1}


__all__ = [
    "RESOURCE_NAMES",
    "CLIMATE_RESOURCE_MULTIPLIERS",
    "AUTHORITY_PRESETS",
    "ADDITIVE",
    "EXCLUSIVE",
    "LedgerEntry",
    "ResourceLedger",
]
