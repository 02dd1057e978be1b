# src/scalesim/storage/base_store.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..models.cluster import CapacityPool, CapacityUnit, PlacementFailureEvent, Taint, WorkloadUnit


class ClusterStateStore(ABC):
    """
    Abstract base class for the system of record of units, workload and
    placement-failure events. All recommendation-engine mutations go through it.

    Implementations raise ClusterStateError on transport or state failures.
    """

    @abstractmethod
    async def list_units(self, labels: Optional[Dict[str, str]] = None) -> List[CapacityUnit]:
        """
        Lists capacity units, optionally restricted to those carrying all given labels.
        """
        pass

    @abstractmethod
    async def list_workload(self, labels: Optional[Dict[str, str]] = None) -> List[WorkloadUnit]:
        """
        Lists workload units, optionally restricted to those carrying all given labels.
        """
        pass

    @abstractmethod
    async def add_units(self, units: List[CapacityUnit]) -> None:
        pass

    @abstractmethod
    async def delete_unit(self, name: str) -> None:
        pass

    @abstractmethod
    async def create_workload(self, workload: List[WorkloadUnit]) -> None:
        """
        Submits workload units for placement. Units with an assigned_unit are bound directly.
        """
        pass

    @abstractmethod
    async def delete_workload(self, workload: List[WorkloadUnit]) -> None:
        pass

    @abstractmethod
    async def taint_unit(self, name: str, taint: Taint) -> None:
        pass

    @abstractmethod
    async def untaint_unit(self, name: str, key: Optional[str] = None) -> None:
        """
        Removes the taint with the given key, or every NoSchedule taint when no key is given.
        """
        pass

    @abstractmethod
    async def list_placement_failure_events(self, since: Optional[datetime] = None) -> List[PlacementFailureEvent]:
        """
        Lists FailedScheduling events, optionally only those at or after `since`.
        """
        pass

    async def close(self):
        """
        Clean up resources (e.g., close API clients).
        """
        pass


class ClusterDescriptorProvider(ABC):
    """Source of the declared capacity pools of a named cluster."""

    @abstractmethod
    def get_pools(self, cluster_name: str) -> List[CapacityPool]:
        """
        Returns the declared pools in declaration (priority) order.

        Raises:
            NotFoundError: If the cluster is unknown.
        """
        pass


def matches_labels(labels: Dict[str, str], selector: Optional[Dict[str, str]]) -> bool:
    """True if every key/value of the selector is present in labels."""
    if not selector:
        return True
    return all(labels.get(k) == v for k, v in selector.items())
