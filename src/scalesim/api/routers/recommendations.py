# src/scalesim/api/routers/recommendations.py
"""
API routes that run scale-up and scale-down recommendations against the
virtual cluster.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from scalesim.api.dependencies import get_cluster_store, get_descriptor_provider, get_price_table
from scalesim.api.schemas import ScaleDownResponse, ScaleUpResponse
from scalesim.core.config import config
from scalesim.core.exceptions import NotFoundError, ScaleSimError
from scalesim.core.scale_down import ScaleDownRecommender
from scalesim.core.scale_up import run_scale_up
from scalesim.models.recommendation import StrategyWeights
from scalesim.pricing.price_table import PriceTable
from scalesim.storage.base_store import ClusterDescriptorProvider, ClusterStateStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Recommendation runs mutate the shared virtual cluster; only one may run at a time.
_RUN_LOCK = asyncio.Lock()


@router.post("/clusters/{cluster}/scale-up", response_model=ScaleUpResponse)
async def scale_up(
    cluster: str,
    least_waste: Optional[float] = Query(None, alias="leastWaste", ge=0, description="Weight of the waste ratio."),
    least_cost: Optional[float] = Query(None, alias="leastCost", ge=0, description="Weight of the cost ratio."),
    store: ClusterStateStore = Depends(get_cluster_store),
    descriptor: ClusterDescriptorProvider = Depends(get_descriptor_provider),
    price_table: PriceTable = Depends(get_price_table),
):
    """Recommend how many units to add per pool and zone to place all pending workload."""
    weights = StrategyWeights(
        least_waste=config.DEFAULT_LEAST_WASTE if least_waste is None else least_waste,
        least_cost=config.DEFAULT_LEAST_COST if least_cost is None else least_cost,
    )
    try:
        async with _RUN_LOCK:
            report = await run_scale_up(store, descriptor, cluster, price_table, weights)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ScaleSimError as e:
        logger.error("Scale-up recommendation for '%s' failed: %s", cluster, e)
        raise HTTPException(status_code=500, detail=str(e))

    return ScaleUpResponse(
        recommendation=report.recommendation.increments,
        termination=report.termination.value,
        rounds=len(report.rounds),
        remaining_unscheduled=report.remaining_unscheduled,
        estimated_hourly_cost=report.estimated_hourly_cost,
    )


@router.post("/scale-down", response_model=ScaleDownResponse)
async def scale_down(
    store: ClusterStateStore = Depends(get_cluster_store),
    price_table: PriceTable = Depends(get_price_table),
):
    """Recommend which units can be removed without leaving workload unplaced."""
    try:
        async with _RUN_LOCK:
            report = await ScaleDownRecommender(store, price_table).run()
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ScaleSimError as e:
        logger.error("Scale-down recommendation failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return ScaleDownResponse(removable=report.removable, essential=report.essential, skipped=report.skipped)
