import math

import pytest

from economy import EconomySystem, TradeOpportunity
from kingdom import Kingdom, KingdomConfig
from modifiers import GameModifiers
from sim.rng import make_rng


def _kingdom(**kwargs) -> Kingdom:
    return Kingdom(KingdomConfig(name="Testland", ruler_name="Ada", seed=1, **kwargs))


def _economy(seed: int = 5, **mods) -> EconomySystem:
    return EconomySystem(rng=make_rng(seed), modifiers=GameModifiers(**mods) if mods else None)


def test_harvest_stays_in_weather_envelope():
    k = _kingdom()
    eco = _economy()
    assert k.infrastructure.farms == 8
    base = 8 * 200 * 1.2 * (1 + 3 * 0.05)
    storage = 0.1  # one market
    low = math.floor(math.floor(base * 0.8) * storage)
    high = math.floor(math.floor(base * 1.2) * storage)

    food = k.resources.food
    for _ in range(1000):
        k.resources.food = food
        result = eco.calculate_harvest(k)
        assert low <= result.food_produced <= high
        assert 0.8 <= result.weather_effect <= 1.2
        assert result.affected_by_weather == (result.weather_effect < 0.9 or result.weather_effect > 1.1)
        assert k.resources.food == food + result.food_produced
        assert 0 <= result.food_quality <= 1


def test_exclusive_authority_suppresses_harvest():
    k = Kingdom(KingdomConfig(name="Testland", ruler_name="Ada", seed=1), authority="exclusive")
    eco = _economy()
    k.ledger.begin_tick("harvest")
    result = eco.calculate_harvest(k)
    assert result.food_produced > 0
    assert k.resources.food == 12000
    entries = k.ledger.journal("food")
    assert len(entries) == 1 and not entries[0].applied
    assert k.ledger.totals_by_source("food", include_suppressed=True) == {
        "economy.harvest": result.food_produced
    }


def test_deficit_triggers_famine():
    k = _kingdom(starting_resources={"food": 0})
    eco = _economy()
    update = eco.update_economy(k)
    assert update.food_consumption == pytest.approx(6495)
    assert update.food_deficit == pytest.approx(6495)
    assert update.happiness_change == pytest.approx(-50)
    # famine loss (765) plus disease, since there are no hospitals
    assert k.population.peasants < 2550 - 765
    assert 0 <= k.happiness <= 100


def test_surplus_is_partly_sold():
    k = _kingdom(starting_resources={"food": 100000})
    eco = _economy(trade_offer_chance=0.0)
    update = eco.update_economy(k)
    assert update.happiness_change == pytest.approx(15)
    assert update.food_deficit == 0
    assert k.resources.food == 100000 - math.floor((100000 - 6495) * 0.5)
    assert k.ledger.totals_by_source("gold")["economy.surplus_sale"] > 0


def test_maintenance_and_trade_income():
    k = _kingdom(starting_resources={"wood": 10000, "stone": 10000, "iron": 10000})
    eco = _economy()
    assert eco.calculate_maintenance_cost(k) == 1045
    assert eco.calculate_trade_income(k) == 2365

    hard = EconomySystem(difficulty=3, rng=make_rng(1))
    assert hard.calculate_maintenance_cost(k) == math.floor(1045.3 * 1.4)


def test_debt_interest_and_repayment():
    k = _kingdom(starting_resources={"debt": 20000})
    eco = _economy()
    eco._manage_debt(k)
    assert k.resources.debt == 21500
    assert k.resources.gold == 4500
    assert k.happiness == pytest.approx(65.0)


def test_inflation_is_bounded_and_reprices():
    k = _kingdom(starting_resources={"gold": 10_000_000})
    eco = _economy()
    eco._adjust_inflation(k)
    assert eco.inflation_rate == pytest.approx(0.1)
    prices = eco.get_market_prices()
    assert prices["gold"] == 1.0
    assert prices["food"] == pytest.approx(0.55)

    k.resources.gold = 0
    k.happiness = 100
    eco._adjust_inflation(k)
    assert eco.inflation_rate == pytest.approx(0.005)


def test_population_changes_use_class_weights():
    k = _kingdom()
    eco = _economy()
    change = eco.calculate_detailed_population_changes(k)
    # 0.01 * 0.7 happiness * 1.2 food * 0.9 without hospitals
    rate = 0.01 * 0.7 * 1.2 * 0.9
    assert change.peasants == math.floor(2550 * rate)
    assert change.merchants == math.floor(90 * rate * 0.8)
    assert change.total_growth == math.floor(3030 * rate)


def test_execute_trade_import_and_export():
    k = _kingdom()
    eco = _economy()
    eco.trade_opportunities = [
        TradeOpportunity("import", "food", 100, 2.0, expiration_year=5),
        TradeOpportunity("export", "iron", 50_000, 1.0, expiration_year=5),
    ]
    assert not eco.execute_trade(k, 7)
    assert not eco.execute_trade(k, -1)

    before = (k.resources.gold, k.resources.iron)
    assert not eco.execute_trade(k, 1)
    assert (k.resources.gold, k.resources.iron) == before
    assert len(eco.get_trade_opportunities()) == 2

    assert eco.execute_trade(k, 0)
    assert k.resources.gold == 4800
    assert k.resources.food == 12100
    assert len(eco.trade_opportunities) == 1


def test_trade_opportunities_are_bounded_and_expire():
    eco = _economy(trade_offer_chance=1.0)
    for year in range(1, 30):
        eco._generate_trade_opportunities(year)
        assert len(eco.trade_opportunities) <= 6
        assert all(o.expiration_year >= year for o in eco.trade_opportunities)
        for o in eco.trade_opportunities:
            assert o.type in ("import", "export")
            assert 100 <= o.amount < 1100
            base = eco.market_prices[o.resource]
            assert base * 0.8 <= o.price_per_unit <= base * 1.2

    quiet = _economy(trade_offer_chance=0.0)
    quiet.trade_opportunities = [TradeOpportunity("import", "wood", 100, 0.3, expiration_year=2)]
    quiet._generate_trade_opportunities(3)
    assert quiet.trade_opportunities == []


def test_process_year_runs_harvest_then_update():
    k = _kingdom()
    eco = _economy()
    k.ledger.begin_tick("year")
    update = eco.process_year(k)
    sources = k.ledger.totals_by_source()
    assert "economy.harvest" in sources
    assert "economy.taxes" in sources
    assert update.gold_change == update.tax_revenue - update.maintenance_cost + (
        sources["economy.trade"]
    )


def test_serialize_round_trip():
    k = _kingdom()
    eco = _economy(trade_offer_chance=1.0)
    for _ in range(3):
        eco.process_year(k)
        k.current_year += 1
    data = eco.serialize()
    clone = EconomySystem.deserialize(data)
    assert clone.serialize() == data


def test_invalid_difficulty():
    with pytest.raises(ValueError):
        EconomySystem(difficulty=0)
