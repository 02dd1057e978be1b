# src/scalesim/core/pools.py
"""
Capacity pool enumeration and unit provisioning.

New units are never built from scratch: a pool must already own at least one
unit, whose labels and resources serve as the template for every clone.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from ..models.cluster import (
    EXISTING_NODE_LABEL,
    HOSTNAME_LABEL,
    NO_SCHEDULE,
    POOL_LABEL,
    REGION_LABEL,
    TRIAL_RUN_LABEL,
    ZONE_LABEL,
    CapacityPool,
    CapacityUnit,
    Taint,
    WorkloadUnit,
)
from ..storage.base_store import ClusterStateStore
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


def region_of(zone: str) -> str:
    """Derives the region from a zone name, e.g. 'eu-west-1a' -> 'eu-west-1'."""
    if zone and zone[-1].isalpha():
        return zone[:-1]
    return zone


def trial_taint(run_ref: str) -> Taint:
    return Taint(key=TRIAL_RUN_LABEL, value=run_ref, effect=NO_SCHEDULE)


class PoolEnumerator:
    """Answers which pools can still grow and clones new units into them."""

    def __init__(self, store: ClusterStateStore):
        self.store = store

    async def _pool_units(self, pool: CapacityPool) -> List[CapacityUnit]:
        # Trial artifacts of a running round are not part of the pool size.
        units = await self.store.list_units({POOL_LABEL: pool.name})
        return [u for u in units if u.trial_run is None]

    async def eligible_pools(self, pools: List[CapacityPool]) -> List[CapacityPool]:
        """Returns, in declaration order, the pools whose live unit count is below their maximum."""
        eligible = []
        for pool in pools:
            count = len(await self._pool_units(pool))
            if count < pool.maximum:
                eligible.append(pool)
            else:
                logger.debug("Pool '%s' is at its maximum (%d/%d)", pool.name, count, pool.maximum)
        return eligible

    async def _template_for(self, pool: CapacityPool) -> Tuple[Optional[CapacityUnit], int]:
        units = await self._pool_units(pool)
        return (units[0] if units else None), len(units)

    def _clone(self, template: CapacityUnit, pool: CapacityPool, zone: Optional[str], run_ref: Optional[str]):
        suffix = uuid.uuid4().hex[:5]
        name = f"{pool.name}-simrun-{suffix}" if run_ref else f"{pool.name}-{suffix}"

        labels = dict(template.labels)
        labels.pop(EXISTING_NODE_LABEL, None)
        labels.pop(TRIAL_RUN_LABEL, None)
        labels[POOL_LABEL] = pool.name
        labels[HOSTNAME_LABEL] = name
        if zone:
            labels[ZONE_LABEL] = zone
            labels[REGION_LABEL] = region_of(zone)

        taints = []
        if run_ref:
            labels[TRIAL_RUN_LABEL] = run_ref
            taints.append(trial_taint(run_ref))

        return CapacityUnit(
            name=name,
            labels=labels,
            allocatable=dict(template.allocatable),
            capacity=dict(template.capacity),
            taints=taints,
        )

    async def provision_trial_unit(
        self, pool: CapacityPool, zone: Optional[str] = None, run_ref: Optional[str] = None
    ) -> Tuple[Optional[CapacityUnit], bool]:
        """
        Adds one unit cloned from an existing unit of the pool.

        When `run_ref` is given the unit is labelled and tainted with it, so that
        only workload tolerating this run ref can be placed on it.

        Returns:
            (unit, True) when a unit was added, (None, False) if the pool is full.

        Raises:
            NotFoundError: If the pool has no unit to use as a template.
        """
        template, count = await self._template_for(pool)
        if count >= pool.maximum:
            logger.info("Pool '%s' already has %d/%d units; not provisioning.", pool.name, count, pool.maximum)
            return None, False
        if template is None:
            raise NotFoundError(f"Pool '{pool.name}' has no unit to use as a template")

        unit = self._clone(template, pool, zone, run_ref)
        await self.store.add_units([unit])
        logger.debug("Provisioned unit '%s' in pool '%s' zone '%s' (run ref %s)", unit.name, pool.name, unit.zone, run_ref)
        return unit, True

    async def provision_committed_unit(
        self, pool: CapacityPool, zone: Optional[str], workload: Optional[List[WorkloadUnit]] = None
    ) -> CapacityUnit:
        """
        Adds a permanent unit for the pool/zone that accepts production workload.

        `workload` is re-created bound to the new unit before the unit becomes
        schedulable, so the placement engine cannot hand its room to anything else.
        """
        template, _ = await self._template_for(pool)
        if template is None:
            raise NotFoundError(f"Pool '{pool.name}' has no unit to use as a template")

        unit = self._clone(template, pool, zone, run_ref=None)
        if workload:
            await self.store.delete_workload(workload)
            await self.store.create_workload([w.model_copy(update={"assigned_unit": unit.name}) for w in workload])
        await self.store.add_units([unit])
        await self.store.untaint_unit(unit.name)
        logger.info(
            "Committed new unit '%s' in pool '%s' zone '%s' with %d workload units",
            unit.name,
            pool.name,
            unit.zone,
            len(workload or []),
        )
        return unit
