# src/scalesim/core/scorer.py
"""
Scores the outcome of a trial. Lower is better.

    WasteRatio       = least_waste * (allocatable - consumed) / allocatable   (memory only)
    UnscheduledRatio = (total - assigned) / total
    CostRatio        = least_cost * price(pool) / sum(price(all pools))
    CumulativeScore  = WasteRatio + UnscheduledRatio + CostRatio
"""

import logging
from typing import Iterable, List, Optional

from ..models.cluster import CapacityPool, CapacityUnit, WorkloadUnit
from ..models.recommendation import StrategyWeights, TrialOutcome
from ..pricing.price_table import PriceTable
from .exceptions import ScoringMismatchError

logger = logging.getLogger(__name__)


def waste_ratio(unit: CapacityUnit, workload: List[WorkloadUnit]) -> float:
    allocatable = unit.allocatable_memory
    if allocatable <= 0:
        return 1.0
    consumed = sum(w.memory_request for w in workload if w.assigned_unit == unit.name)
    return (allocatable - consumed) / allocatable


def unscheduled_ratio(workload: List[WorkloadUnit]) -> float:
    total = len(workload)
    if total == 0:
        return 0.0
    assigned = sum(1 for w in workload if w.placed)
    return (total - assigned) / total


def cost_ratio(unit: CapacityUnit, pools: List[CapacityPool], price_table: PriceTable) -> float:
    pool = next((p for p in pools if p.name == unit.pool), None)
    if pool is None:
        raise ScoringMismatchError(f"Unit '{unit.name}' has pool label '{unit.pool}' which matches no declared pool")
    total = sum(price_table.price_of(p.machine_type) for p in pools)
    if total == 0:
        return 0.0
    return price_table.price_of(pool.machine_type) / total


def score(
    weights: StrategyWeights,
    unit: CapacityUnit,
    workload: List[WorkloadUnit],
    pools: List[CapacityPool],
    price_table: PriceTable,
) -> TrialOutcome:
    """
    Computes the TrialOutcome of `unit` given the workload snapshot of its trial.

    Raises:
        ScoringMismatchError: If the unit's pool is not among `pools`.
    """
    waste = weights.least_waste * waste_ratio(unit, workload)
    unscheduled = unscheduled_ratio(workload)
    cost = weights.least_cost * cost_ratio(unit, pools, price_table)

    outcome = TrialOutcome(
        unit_name=unit.name,
        pool_name=unit.pool,
        zone=unit.zone,
        instance_type=unit.instance_type,
        num_assigned_to_unit=sum(1 for w in workload if w.assigned_unit == unit.name),
        num_assigned_total=sum(1 for w in workload if w.placed),
        waste_ratio=waste,
        unscheduled_ratio=unscheduled,
        cost_ratio=cost,
        cumulative_score=waste + unscheduled + cost,
    )
    logger.debug("Scored %s: %s", unit.name, outcome)
    return outcome


def select_winner(outcomes: Iterable[TrialOutcome]) -> Optional[TrialOutcome]:
    """
    Returns the outcome with the minimum cumulative score.

    Ties go to the earliest outcome, i.e. pool declaration order then zone
    order when outcomes are produced the way the scale-up loop produces them.
    Trials whose own unit received no workload cannot win.
    """
    candidates = [o for o in outcomes if o.num_assigned_to_unit > 0]
    if not candidates:
        return None
    return min(candidates, key=lambda o: o.cumulative_score)
