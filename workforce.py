"""
Jobs and unemployment.

Peasants and artisans form the kingdom's workforce.  Farms, mines,
workshops and markets each provide a fixed number of positions; whoever
is left over is counted as unemployed.  Unemployment is never stored as
an independent quantity: it is derived again on every tick from the
current buildings and workforce.
"""
from __future__ import annotations
from typing import Dict
from dataclasses import dataclass


@dataclass
class WorkforceAllocation:
    """Snapshot of jobs versus workers for one tick."""
    total_workers: int = 0
    available_jobs: int = 0
    employed: int = 0
    unemployed: int = 0

    @property
    def unemployment_ratio(self) -> float:
        if self.total_workers <= 0:
            return 0.0
        return self.unemployed / self.total_workers


class WorkforceSystem:
    """Derives unemployment from infrastructure and population."""

    # Positions offered by one building of each type
    JOBS_PER_BUILDING: Dict[str, int] = {
        "farms": 10,
        "mines": 8,
        "workshops": 6,
        "markets": 4,
    }

    # Above this share of unemployed workers the kingdom suffers unrest
    UNREST_RATIO = 0.1
    UNREST_HAPPINESS_PENALTY = 5.0
    UNREST_CRIME_INCREASE = 3.0

    def available_jobs(self, infrastructure) -> int:
        return sum(
            getattr(infrastructure, building) * jobs
            for building, jobs in self.JOBS_PER_BUILDING.items()
        )

    def calculate_workforce(self, population, infrastructure) -> WorkforceAllocation:
        """Calculate the job allocation for the current population."""
        jobs = self.available_jobs(infrastructure)
        workers = int(population.peasants + population.artisans)
        unemployed = max(0, workers - jobs)
        return WorkforceAllocation(
            total_workers=workers,
            available_jobs=jobs,
            employed=workers - unemployed,
            unemployed=unemployed,
        )

    def causes_unrest(self, allocation: WorkforceAllocation) -> bool:
        return allocation.unemployed > allocation.total_workers * self.UNREST_RATIO


# Global workforce system instance
WORKFORCE_SYSTEM = WorkforceSystem()
