# src/scalesim/core/scale_down.py
"""
Scale-down recommendation.

Units are tested one at a time, most expensive first: the unit is cordoned,
copies of its workload are submitted for placement elsewhere and the unit is
only removed when every copy found a new home. Otherwise the test is rolled
back and the unit is kept as essential.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ..models.cluster import NO_SCHEDULE, RELOCATED_FROM_LABEL, CapacityUnit, Taint, WorkloadUnit
from ..models.recommendation import ScaleDownReport
from ..pricing.price_table import PriceTable
from ..storage.base_store import ClusterStateStore
from .config import config
from .convergence import wait_for_convergence
from .exceptions import ConvergenceTimeoutError

logger = logging.getLogger(__name__)

SCALE_DOWN_TAINT_KEY = "scalesim.io/scale-down-candidate"


def order_by_descending_price(units: List[CapacityUnit], price_table: PriceTable) -> List[CapacityUnit]:
    """Sorts units by price, most expensive first; equal prices keep their input order."""
    return sorted(units, key=lambda u: price_table.price_of(u.instance_type), reverse=True)


def relocated_copy(workload: WorkloadUnit, unit_name: str, scheduler_name: Optional[str]) -> WorkloadUnit:
    """A fresh, unassigned copy of `workload` marked as relocated from `unit_name`."""
    return workload.model_copy(
        update={
            "name": f"{workload.name}-{uuid.uuid4().hex[:5]}",
            "labels": {**workload.labels, RELOCATED_FROM_LABEL: unit_name},
            "scheduler_name": scheduler_name or workload.scheduler_name,
            "assigned_unit": None,
        },
        deep=True,
    )


class ScaleDownRecommender:
    def __init__(
        self,
        store: ClusterStateStore,
        price_table: PriceTable,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        scheduler_name: Optional[str] = None,
    ):
        self.store = store
        self.price_table = price_table
        self.timeout = timeout or config.SCALE_DOWN_TIMEOUT_SECONDS
        self.poll_interval = poll_interval or config.POLL_INTERVAL_SECONDS
        self.scheduler_name = scheduler_name or config.TRIAL_SCHEDULER_NAME

    async def run(self, units: Optional[List[CapacityUnit]] = None) -> ScaleDownReport:
        """
        Tests every candidate unit in descending price order.

        Args:
            units: The units to consider; all units of the store when omitted.

        Returns:
            ScaleDownReport: `removable` holds the removed unit names in test order.
        """
        if units is None:
            units = await self.store.list_units()

        report = ScaleDownReport()
        for unit in order_by_descending_price(units, self.price_table):
            if unit.is_existing:
                logger.debug("Skipping pre-existing unit '%s'", unit.name)
                report.skipped.append(unit.name)
                continue
            if unit.trial_run is not None:
                logger.debug("Ignoring trial unit '%s' of run %s", unit.name, unit.trial_run)
                continue

            if await self._try_remove(unit):
                report.removable.append(unit.name)
            else:
                report.essential.append(unit.name)

        logger.info("Scale-down recommendation: remove %s", report.removable)
        return report

    async def _assigned_workload(self, unit: CapacityUnit) -> List[WorkloadUnit]:
        workload = await self.store.list_workload()
        return [w for w in workload if w.assigned_unit == unit.name]

    async def _try_remove(self, unit: CapacityUnit) -> bool:
        assigned = await self._assigned_workload(unit)
        if not assigned:
            logger.info("Unit '%s' has no workload; it can be removed.", unit.name)
            await self.store.delete_unit(unit.name)
            return True

        selector = {RELOCATED_FROM_LABEL: unit.name}
        await self.store.taint_unit(unit.name, Taint(key=SCALE_DOWN_TAINT_KEY, value=unit.name, effect=NO_SCHEDULE))
        try:
            since = datetime.now(timezone.utc)
            copies = [relocated_copy(w, unit.name, self.scheduler_name) for w in assigned]
            await self.store.create_workload(copies)
            logger.debug("Relocating %d workload units away from '%s'", len(copies), unit.name)

            try:
                unscheduled = await wait_for_convergence(self.store, self.timeout, since, selector, self.poll_interval)
            except ConvergenceTimeoutError as e:
                unscheduled = e.unscheduled

            # Copies tolerating every taint can land back on the cordoned unit.
            returned = [c for c in await self.store.list_workload(selector) if c.assigned_unit == unit.name]
            unscheduled += len(returned)
        except (Exception, asyncio.CancelledError):
            logger.error("Scale-down test of unit '%s' failed; rolling back.", unit.name)
            await self._rollback(unit)
            raise

        if unscheduled:
            logger.info("Unit '%s' is essential: %d workload units could not be relocated.", unit.name, unscheduled)
            await self._rollback(unit)
            return False

        logger.info("Unit '%s' can be removed; its workload was relocated.", unit.name)
        await self.store.delete_workload(assigned)
        await self.store.delete_unit(unit.name)
        return True

    async def _rollback(self, unit: CapacityUnit) -> None:
        copies = await self.store.list_workload({RELOCATED_FROM_LABEL: unit.name})
        if copies:
            await self.store.delete_workload(copies)
        await self.store.untaint_unit(unit.name, SCALE_DOWN_TAINT_KEY)


async def run_scale_down(
    store: ClusterStateStore, price_table: PriceTable, units: Optional[List[CapacityUnit]] = None
) -> List[str]:
    """Runs a scale-down recommendation and returns the removable unit names in test order."""
    report = await ScaleDownRecommender(store, price_table).run(units)
    return report.removable
