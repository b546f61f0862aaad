from kingdom import KingdomInfrastructure, KingdomPopulation
from workforce import WORKFORCE_SYSTEM


def test_jobs_from_buildings():
    infra = KingdomInfrastructure()
    # 8 farms, 2 mines, 2 workshops, 1 market
    assert WORKFORCE_SYSTEM.available_jobs(infra) == 80 + 16 + 12 + 4


def test_unemployment_and_unrest():
    infra = KingdomInfrastructure(farms=10, mines=0, workshops=0, markets=0)
    pop = KingdomPopulation(peasants=100, artisans=10)
    alloc = WORKFORCE_SYSTEM.calculate_workforce(pop, infra)
    assert alloc.total_workers == 110
    assert alloc.employed == 100
    assert alloc.unemployed == 10
    assert alloc.unemployment_ratio == 10 / 110
    assert not WORKFORCE_SYSTEM.causes_unrest(alloc)

    pop.peasants = 200
    alloc = WORKFORCE_SYSTEM.calculate_workforce(pop, infra)
    assert alloc.unemployed == 110
    assert WORKFORCE_SYSTEM.causes_unrest(alloc)


def test_no_workers_no_ratio():
    alloc = WORKFORCE_SYSTEM.calculate_workforce(KingdomPopulation(), KingdomInfrastructure())
    assert alloc.unemployment_ratio == 0.0
