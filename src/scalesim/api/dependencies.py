# src/scalesim/api/dependencies.py
"""
FastAPI dependency injection functions.

These functions provide the cluster state store, the descriptor provider and
the price table to API route handlers via FastAPI's Depends() mechanism,
keeping the API layer decoupled from concrete implementations.
"""

import logging

from scalesim.pricing.price_table import PriceTable
from scalesim.storage.base_store import ClusterDescriptorProvider, ClusterStateStore

logger = logging.getLogger(__name__)


async def get_cluster_store() -> ClusterStateStore:
    """Provides the ClusterStateStore instance via the factory."""
    from scalesim.core.factory import get_cluster_store as factory_get_cluster_store

    return factory_get_cluster_store()


async def get_descriptor_provider() -> ClusterDescriptorProvider:
    """Provides the ClusterDescriptorProvider instance via the factory."""
    from scalesim.core.factory import get_descriptor_provider as factory_get_descriptor_provider

    return factory_get_descriptor_provider()


async def get_price_table() -> PriceTable:
    """Provides the process-wide PriceTable via the factory."""
    from scalesim.core.factory import get_price_table as factory_get_price_table

    return factory_get_price_table()
