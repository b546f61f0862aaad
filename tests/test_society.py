import pytest

from kingdom import KingdomPopulation
from society import (
    DEFAULT_CLASSES,
    SocialClass,
    food_demand,
    starting_population,
    weighted_sum,
)


def test_starting_population_split():
    pop = starting_population(3000)
    assert pop["peasants"] == 2550
    assert pop["nobles"] == 15
    assert pop["soldiers"] == 60
    assert pop["unemployed"] == 120

    tiny = starting_population(100)
    assert tiny["soldiers"] == 50
    assert tiny["nobles"] == 3


def test_food_tables_differ_per_path():
    pop = KingdomPopulation(**starting_population(3000))
    assert food_demand(pop, "economy") == pytest.approx(6495)
    assert food_demand(pop, "kingdom") > food_demand(pop, "economy")
    with pytest.raises(ValueError):
        food_demand(pop, "court")


def test_weighted_sum_and_registry():
    pop = KingdomPopulation(nobles=2, clergy=1, scholars=1)
    assert weighted_sum(pop, "salary") == pytest.approx(2 * 10 + 5 + 8)
    assert set(DEFAULT_CLASSES) == set(SocialClass)
    assert DEFAULT_CLASSES[SocialClass.PEASANTS].growth_weight == 1.0
