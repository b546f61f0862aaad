from types import SimpleNamespace

import pytest

from kingdom import KingdomResources
from resources import (
    AUTHORITY_PRESETS, ECONOMY_HARVEST, ECONOMY_TAXES, KINGDOM_PRODUCTION,
    ResourceLedger,
)


def _ledger(authority="additive", **amounts):
    owner = SimpleNamespace(resources=KingdomResources(**amounts))
    return owner, ResourceLedger(owner, authority)


def test_credit_and_debit_clamp_at_zero():
    owner, ledger = _ledger(gold=100)
    assert ledger.credit("gold", 50, KINGDOM_PRODUCTION) == 50
    assert ledger.debit("gold", 500, KINGDOM_PRODUCTION) == 150
    assert owner.resources.gold == 0
    assert ledger.credit("food", 0, KINGDOM_PRODUCTION) == 0
    assert ledger.journal("food") == []


def test_debt_is_unclamped():
    owner, ledger = _ledger()
    assert ledger.debit("debt", 300, "external.effect") == 300
    assert owner.resources.debt == -300


def test_unknown_resource_raises():
    _, ledger = _ledger()
    with pytest.raises(KeyError):
        ledger.credit("mana", 1, KINGDOM_PRODUCTION)


def test_exclusive_preset_records_but_suppresses():
    owner, ledger = _ledger("exclusive", food=10, gold=10)
    assert ledger.credit("food", 100, ECONOMY_HARVEST) == 0
    assert ledger.credit("gold", 100, ECONOMY_TAXES) == 0
    assert ledger.credit("food", 40, KINGDOM_PRODUCTION) == 40
    assert owner.resources.food == 50
    assert owner.resources.gold == 10

    assert ledger.totals_by_source("food") == {KINGDOM_PRODUCTION: 40}
    assert ledger.totals_by_source("food", include_suppressed=True) == {
        ECONOMY_HARVEST: 100, KINGDOM_PRODUCTION: 40,
    }
    assert ledger.overlapping_resources() == {}


def test_overlapping_resources_under_additive():
    owner, ledger = _ledger()
    ledger.begin_tick("year-1")
    ledger.credit("food", 10, KINGDOM_PRODUCTION)
    ledger.credit("food", 20, ECONOMY_HARVEST)
    ledger.credit("gold", 5, KINGDOM_PRODUCTION)
    assert ledger.tick == "year-1"
    assert ledger.overlapping_resources() == {"food": ["economy", "kingdom"]}
    assert owner.resources.food == 30

    ledger.begin_tick("year-2")
    assert ledger.journal() == []


def test_authority_switching_and_custom_policy():
    owner, ledger = _ledger()
    assert set(AUTHORITY_PRESETS) == {"additive", "exclusive"}
    ledger.set_authority({"wood": {KINGDOM_PRODUCTION}})
    assert ledger.authority_name == "custom"
    assert not ledger.is_authoritative("wood", KINGDOM_PRODUCTION)
    assert ledger.is_authoritative("stone", KINGDOM_PRODUCTION)
    assert ledger.debit("wood", 5, KINGDOM_PRODUCTION) == 0
    with pytest.raises(ValueError):
        ledger.set_authority("anarchy")


def test_ledger_follows_replaced_resources():
    owner, ledger = _ledger(gold=1)
    owner.resources = KingdomResources(gold=500)
    ledger.credit("gold", 1, KINGDOM_PRODUCTION)
    assert owner.resources.gold == 501


def test_journal_keeps_only_the_newest_entries():
    owner = SimpleNamespace(resources=KingdomResources())
    ledger = ResourceLedger(owner, max_entries=3)
    for amount in range(1, 6):
        ledger.credit("gold", amount, ECONOMY_TAXES)
    assert [e.amount for e in ledger.journal()] == [3, 4, 5]
    assert owner.resources.gold == 15

    ledger.begin_tick("year-2")
    assert ledger.journal() == []
