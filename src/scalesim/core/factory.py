# src/scalesim/core/factory.py
"""
Factory functions to instantiate the process-wide collaborators of the
recommendation engine: the price table, the cluster state store and the
cluster descriptor provider.
"""

import logging
import traceback
from functools import lru_cache

import typer

from ..core.config import config
from ..pricing.price_table import PriceTable
from ..storage.base_store import ClusterDescriptorProvider, ClusterStateStore
from ..storage.descriptor import ShootFileDescriptorProvider
from ..storage.kubernetes_store import KubernetesClusterStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_price_table() -> PriceTable:
    """
    Loads the price table once. Uses lru_cache to act as a singleton.
    A missing pricing file yields an empty table, pricing every machine type at 0.
    """
    try:
        return PriceTable.from_file(config.PRICING_FILE, term=config.PRICING_TERM)
    except FileNotFoundError:
        logger.warning("Pricing file '%s' not found; using an empty price table.", config.PRICING_FILE)
        return PriceTable({})
    except Exception as e:
        logger.error("An error occurred while loading the price table: %s", e)
        logger.error("Price table initialization failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)


@lru_cache(maxsize=1)
def get_cluster_store() -> ClusterStateStore:
    """
    Factory function to get the cluster state store of the virtual cluster.
    Uses lru_cache to act as a singleton.
    """
    logger.info("Using Kubernetes cluster state store (namespace '%s').", config.KUBE_NAMESPACE)
    return KubernetesClusterStore(namespace=config.KUBE_NAMESPACE)


@lru_cache(maxsize=1)
def get_descriptor_provider() -> ClusterDescriptorProvider:
    """
    Factory function to get the provider of declared worker pools.
    """
    logger.info("Reading cluster descriptors from '%s'.", config.CLUSTER_DESCRIPTOR_DIR)
    return ShootFileDescriptorProvider(config.CLUSTER_DESCRIPTOR_DIR)
