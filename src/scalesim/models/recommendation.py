# src/scalesim/models/recommendation.py
"""
Result models produced by the recommendation engine: strategy weights, the
per-trial outcome, the accumulated scale-up recommendation and the reports
returned to callers.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StrategyWeights(BaseModel):
    """Caller-supplied multipliers for the waste and cost components of a trial score."""

    least_waste: float = Field(1.0, ge=0.0)
    least_cost: float = Field(1.0, ge=0.0)


class TrialOutcome(BaseModel):
    """
    The scored result of one trial (one provisioned unit plus its own copy of the
    unplaced workload). Lower cumulative score is better.
    """

    unit_name: str
    pool_name: str
    zone: Optional[str] = None
    instance_type: Optional[str] = None
    num_assigned_to_unit: int = 0
    num_assigned_total: int = 0
    waste_ratio: float = 0.0
    unscheduled_ratio: float = 0.0
    cost_ratio: float = 0.0
    cumulative_score: float = 0.0

    @property
    def key(self) -> str:
        return recommendation_key(self.pool_name, self.zone)

    def __str__(self) -> str:
        return (
            f"(Pool: {self.pool_name}, Zone: {self.zone}, WasteRatio: {self.waste_ratio:.4f}, "
            f"UnscheduledRatio: {self.unscheduled_ratio:.4f}, CostRatio: {self.cost_ratio:.4f}, "
            f"CumulativeScore: {self.cumulative_score:.4f}, AssignedToUnit: {self.num_assigned_to_unit}, "
            f"AssignedTotal: {self.num_assigned_total})"
        )


def recommendation_key(pool_name: str, zone: Optional[str]) -> str:
    return f"{pool_name}/{zone or ''}"


class Recommendation(BaseModel):
    """Accumulated mapping of 'pool/zone' to the number of units to add."""

    increments: Dict[str, int] = Field(default_factory=dict)

    def add(self, pool_name: str, zone: Optional[str], count: int = 1) -> None:
        key = recommendation_key(pool_name, zone)
        self.increments[key] = self.increments.get(key, 0) + count

    @property
    def is_empty(self) -> bool:
        return not self.increments

    @property
    def total_units(self) -> int:
        return sum(self.increments.values())

    def __str__(self) -> str:
        return "{" + ",".join(f"{k}:{v}" for k, v in self.increments.items()) + "}"


class Termination(str, Enum):
    """Why a scale-up run stopped."""

    NOTHING_TO_DO = "NOTHING_TO_DO"
    ALL_SCHEDULED = "ALL_SCHEDULED"
    NO_ELIGIBLE_POOLS = "NO_ELIGIBLE_POOLS"
    NO_WINNER = "NO_WINNER"
    MAX_ROUNDS = "MAX_ROUNDS"


class RoundResult(BaseModel):
    round_number: int
    outcomes: List[TrialOutcome] = Field(default_factory=list)
    winner: Optional[TrialOutcome] = None
    duration_seconds: float = 0.0


class ScaleUpReport(BaseModel):
    recommendation: Recommendation = Field(default_factory=Recommendation)
    rounds: List[RoundResult] = Field(default_factory=list)
    termination: Termination = Termination.NOTHING_TO_DO
    remaining_unscheduled: int = 0
    estimated_hourly_cost: float = 0.0


class ScaleDownReport(BaseModel):
    removable: List[str] = Field(default_factory=list, description="Units recommended for removal, in test order.")
    essential: List[str] = Field(default_factory=list, description="Units whose workload could not be relocated.")
    skipped: List[str] = Field(default_factory=list, description="Pre-existing units never considered for removal.")
