# src/scalesim/api/routers/clusters.py
"""
API routes for the cluster descriptor and the current unit/workload assignment.
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException

from scalesim.api.dependencies import get_cluster_store, get_descriptor_provider
from scalesim.api.schemas import AssignmentsResponse, UnitAssignment
from scalesim.core.exceptions import NotFoundError, ScaleSimError
from scalesim.models.cluster import CapacityPool
from scalesim.storage.base_store import ClusterDescriptorProvider, ClusterStateStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/clusters/{cluster}/pools", response_model=List[CapacityPool])
async def list_pools(
    cluster: str,
    descriptor: ClusterDescriptorProvider = Depends(get_descriptor_provider),
):
    """Return the declared worker pools of a cluster in priority order."""
    try:
        return descriptor.get_pools(cluster)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ScaleSimError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/assignments", response_model=AssignmentsResponse)
async def list_assignments(
    store: ClusterStateStore = Depends(get_cluster_store),
):
    """Return which workload units are currently assigned to which capacity unit."""
    try:
        units = await store.list_units()
        workload = await store.list_workload()
    except ScaleSimError as e:
        raise HTTPException(status_code=500, detail=str(e))

    by_unit: Dict[str, List[str]] = {u.name: [] for u in units}
    unscheduled = []
    for w in workload:
        if w.placed:
            by_unit.setdefault(w.assigned_unit, []).append(w.name)
        else:
            unscheduled.append(w.name)

    units_by_name = {u.name: u for u in units}
    assignments = [
        UnitAssignment(
            unit_name=name,
            pool=units_by_name[name].pool if name in units_by_name else None,
            zone=units_by_name[name].zone if name in units_by_name else None,
            workload=sorted(names),
        )
        for name, names in sorted(by_unit.items())
    ]
    return AssignmentsResponse(assignments=assignments, unscheduled=sorted(unscheduled))
