# src/scalesim/core/scale_up.py
"""
Scale-up recommendation.

Every round provisions one trial unit per eligible pool and zone, lets the
placement engine place a private copy of the pending workload on it, scores
each trial and commits one unit for the best pool/zone. Rounds repeat until
all workload is placed or no pool can help any more.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ..models.cluster import (
    NO_SCHEDULE,
    TRIAL_RUN_LABEL,
    CapacityPool,
    CapacityUnit,
    Toleration,
    WorkloadUnit,
)
from ..models.recommendation import RoundResult, ScaleUpReport, StrategyWeights, Termination
from ..pricing.price_table import PriceTable
from ..storage.base_store import ClusterDescriptorProvider, ClusterStateStore
from .config import config
from .convergence import wait_for_convergence
from .exceptions import ConvergenceTimeoutError, NotFoundError
from .pools import PoolEnumerator
from .scorer import score, select_winner

logger = logging.getLogger(__name__)

TRIAL_SUFFIX = "-simrun-"


@dataclass
class Trial:
    """One pool/zone experiment of a round."""

    pool: CapacityPool
    zone: Optional[str]
    run_ref: str
    unit: Optional[CapacityUnit] = None
    copies: Dict[str, str] = field(default_factory=dict)


def make_run_ref(pool: CapacityPool, zone: Optional[str], round_number: int) -> str:
    parts = [pool.name]
    if zone:
        parts.append(zone)
    parts.append(str(round_number))
    return "-".join(parts)


def trial_copy(workload: WorkloadUnit, run_ref: str, scheduler_name: str) -> WorkloadUnit:
    """
    Returns a copy of `workload` that can only be placed on units tainted with `run_ref`
    and whose topology spread only counts workload of the same trial.
    """
    constraints = []
    for constraint in workload.topology_spread_constraints:
        constraint = copy.deepcopy(constraint)
        selector = constraint.setdefault("labelSelector", {})
        selector.setdefault("matchLabels", {})[TRIAL_RUN_LABEL] = run_ref
        constraints.append(constraint)

    return workload.model_copy(
        update={
            "name": f"{workload.name}{TRIAL_SUFFIX}{run_ref}",
            "labels": {**workload.labels, TRIAL_RUN_LABEL: run_ref},
            "tolerations": [Toleration(key=TRIAL_RUN_LABEL, value=run_ref, effect=NO_SCHEDULE, operator="Equal")],
            "topology_spread_constraints": constraints,
            "scheduler_name": scheduler_name,
            "assigned_unit": None,
        },
        deep=True,
    )


class ScaleUpRecommender:
    """Runs trial rounds against the cluster state store and accumulates a Recommendation."""

    def __init__(
        self,
        store: ClusterStateStore,
        pools: List[CapacityPool],
        price_table: PriceTable,
        enumerator: Optional[PoolEnumerator] = None,
        round_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_rounds: Optional[int] = None,
        scheduler_name: Optional[str] = None,
    ):
        self.store = store
        self.pools = list(pools)
        self.price_table = price_table
        self.enumerator = enumerator or PoolEnumerator(store)
        self.round_timeout = round_timeout or config.ROUND_TIMEOUT_SECONDS
        self.poll_interval = poll_interval or config.POLL_INTERVAL_SECONDS
        self.max_rounds = max_rounds or config.MAX_ROUNDS
        self.scheduler_name = scheduler_name or config.TRIAL_SCHEDULER_NAME

    async def unscheduled_workload(self) -> List[WorkloadUnit]:
        """Returns the real (non-trial) workload without an assigned unit."""
        workload = await self.store.list_workload()
        return [w for w in workload if not w.placed and TRIAL_RUN_LABEL not in w.labels]

    async def run(self, weights: Optional[StrategyWeights] = None) -> ScaleUpReport:
        weights = weights or StrategyWeights(least_waste=config.DEFAULT_LEAST_WASTE, least_cost=config.DEFAULT_LEAST_COST)
        report = ScaleUpReport()

        pending = await self.unscheduled_workload()
        if not pending:
            logger.info("No unscheduled workload; nothing to recommend.")
            report.termination = Termination.NOTHING_TO_DO
            return report

        logger.info("Starting scale-up recommendation for %d unscheduled workload units", len(pending))
        pools_by_name = {p.name: p for p in self.pools}
        termination = Termination.MAX_ROUNDS

        for round_number in range(1, self.max_rounds + 1):
            eligible = await self.enumerator.eligible_pools(self.pools)
            if not eligible:
                logger.info("Round #%d: no pool can grow any further.", round_number)
                termination = Termination.NO_ELIGIBLE_POOLS
                break

            result, placed = await self._run_round(round_number, eligible, pending, weights)
            report.rounds.append(result)
            if result.winner is None:
                logger.info("Round #%d: no trial could place any workload; stopping.", round_number)
                termination = Termination.NO_WINNER
                break

            winner = result.winner
            report.recommendation.add(winner.pool_name, winner.zone)
            logger.info("Round #%d winner: %s", round_number, winner)

            bound = [w for w in pending if w.name in placed]
            await self.enumerator.provision_committed_unit(pools_by_name[winner.pool_name], winner.zone, bound)

            pending = await self.unscheduled_workload()
            if not pending:
                termination = Termination.ALL_SCHEDULED
                break
        else:
            logger.warning("Stopped after %d rounds with %d workload units still unscheduled", self.max_rounds, len(pending))

        report.termination = termination
        report.remaining_unscheduled = len(pending)
        report.estimated_hourly_cost = sum(
            self.price_table.price_of(pools_by_name[r.winner.pool_name].machine_type) for r in report.rounds if r.winner
        )
        logger.info(
            "Scale-up recommendation %s finished with %s after %d rounds",
            report.recommendation,
            termination.value,
            len(report.rounds),
        )
        return report

    async def _start_trial(self, trial: Trial, pending: List[WorkloadUnit]) -> None:
        try:
            unit, created = await self.enumerator.provision_trial_unit(trial.pool, trial.zone, trial.run_ref)
        except NotFoundError as e:
            logger.warning("Skipping pool '%s': %s", trial.pool.name, e)
            return
        if not created:
            return

        trial.unit = unit
        copies = [trial_copy(w, trial.run_ref, self.scheduler_name) for w in pending]
        trial.copies = {c.name: original.name for c, original in zip(copies, pending)}
        await self.store.create_workload(copies)
        logger.debug("Trial %s: submitted %d workload copies to unit '%s'", trial.run_ref, len(copies), unit.name)

    async def _wait_for_trials(self, trials: List[Trial], since: datetime) -> List[ConvergenceTimeoutError]:
        # Each trial is waited on with the same timeout, started together: one shared deadline.
        results = await asyncio.gather(
            *(
                wait_for_convergence(
                    self.store, self.round_timeout, since, {TRIAL_RUN_LABEL: t.run_ref}, self.poll_interval
                )
                for t in trials
            ),
            return_exceptions=True,
        )
        timeouts = []
        for result in results:
            if isinstance(result, ConvergenceTimeoutError):
                timeouts.append(result)
            elif isinstance(result, BaseException):
                raise result
        return timeouts

    async def _run_round(
        self,
        round_number: int,
        eligible: List[CapacityPool],
        pending: List[WorkloadUnit],
        weights: StrategyWeights,
    ) -> Tuple[RoundResult, set]:
        """
        Runs one round and returns its result together with the names of the
        pending workload the winning trial placed on its own unit.
        """
        started = time.monotonic()
        trials = [
            Trial(pool=pool, zone=zone, run_ref=make_run_ref(pool, zone, round_number))
            for pool in eligible
            for zone in (pool.zones or [None])
        ]
        logger.info("Round #%d: starting %d trials", round_number, len(trials))
        since = datetime.now(timezone.utc)

        try:
            try:
                async with asyncio.TaskGroup() as tg:
                    for trial in trials:
                        tg.create_task(self._start_trial(trial, pending))
            except ExceptionGroup as eg:
                raise eg.exceptions[0] from eg

            active = [t for t in trials if t.unit is not None]
            if not active:
                return RoundResult(round_number=round_number, duration_seconds=time.monotonic() - started), set()

            timeouts = await self._wait_for_trials(active, since)

            outcomes = []
            snapshots: Dict[str, List[WorkloadUnit]] = {}
            for trial in active:
                snapshots[trial.run_ref] = await self.store.list_workload({TRIAL_RUN_LABEL: trial.run_ref})

            if timeouts and not any(w.placed for copies in snapshots.values() for w in copies):
                raise timeouts[0]
            if timeouts:
                logger.warning("Round #%d: %d trials did not converge; scoring partial placement.", round_number, len(timeouts))

            for trial in active:
                outcomes.append(score(weights, trial.unit, snapshots[trial.run_ref], self.pools, self.price_table))

            winner = select_winner(outcomes)
            placed = set()
            if winner is not None:
                trial = next(t for t in active if t.unit.name == winner.unit_name)
                placed = {
                    trial.copies[w.name]
                    for w in snapshots[trial.run_ref]
                    if w.assigned_unit == trial.unit.name and w.name in trial.copies
                }
            return (
                RoundResult(
                    round_number=round_number,
                    outcomes=outcomes,
                    winner=winner,
                    duration_seconds=time.monotonic() - started,
                ),
                placed,
            )
        finally:
            await self._cleanup(trials)

    async def _cleanup(self, trials: List[Trial]) -> None:
        """Deletes every unit and workload copy carrying one of the round's run refs."""
        for trial in trials:
            selector = {TRIAL_RUN_LABEL: trial.run_ref}
            copies = await self.store.list_workload(selector)
            if copies:
                await self.store.delete_workload(copies)
            for unit in await self.store.list_units(selector):
                await self.store.delete_unit(unit.name)
        logger.debug("Cleaned up %d trials", len(trials))


async def run_scale_up(
    store: ClusterStateStore,
    descriptor: ClusterDescriptorProvider,
    cluster_name: str,
    price_table: PriceTable,
    weights: Optional[StrategyWeights] = None,
) -> ScaleUpReport:
    """Loads the declared pools of `cluster_name` and runs a scale-up recommendation."""
    pools = descriptor.get_pools(cluster_name)
    recommender = ScaleUpRecommender(store, pools, price_table)
    return await recommender.run(weights)
