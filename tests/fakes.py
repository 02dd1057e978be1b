# tests/fakes.py
"""
In-memory cluster state store with a first-fit memory placement engine.

Placement honours taints, tolerations and node selectors. It is attempted
synchronously whenever workload is created or a unit becomes available, and
every failed attempt emits a FailedScheduling event, the way kube-scheduler
does on each retry.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from scalesim.core.exceptions import ClusterStateError
from scalesim.models.cluster import (
    EXISTING_NODE_LABEL,
    INSTANCE_TYPE_LABEL,
    NO_SCHEDULE,
    POOL_LABEL,
    ZONE_LABEL,
    CapacityUnit,
    ContainerRequest,
    PlacementFailureEvent,
    Taint,
    Toleration,
    WorkloadUnit,
)
from scalesim.storage.base_store import ClusterStateStore, matches_labels

DEFAULT_NAMESPACE = "default"


def make_unit(
    name: str,
    pool: str = "pool-a",
    zone: str = "eu-west-1a",
    instance_type: str = "m5.large",
    memory: str = "8Gi",
    existing: bool = False,
    taints: Optional[List[Taint]] = None,
) -> CapacityUnit:
    labels = {POOL_LABEL: pool, ZONE_LABEL: zone, INSTANCE_TYPE_LABEL: instance_type}
    if existing:
        labels[EXISTING_NODE_LABEL] = "true"
    return CapacityUnit(
        name=name,
        labels=labels,
        allocatable={"memory": memory, "cpu": "2"},
        capacity={"memory": memory, "cpu": "2"},
        taints=taints or [],
    )


def make_workload(
    name: str,
    memory: str = "1Gi",
    assigned_unit: Optional[str] = None,
    labels: Optional[Dict[str, str]] = None,
    node_selector: Optional[Dict[str, str]] = None,
    tolerations: Optional[List[Toleration]] = None,
) -> WorkloadUnit:
    return WorkloadUnit(
        name=name,
        namespace=DEFAULT_NAMESPACE,
        labels=labels or {"app": "web"},
        node_selector=node_selector or {},
        tolerations=tolerations or [],
        containers=[ContainerRequest(requests={"memory": memory, "cpu": "100m"})],
        assigned_unit=assigned_unit,
    )


class InMemoryClusterStore(ClusterStateStore):
    def __init__(self, units: Optional[List[CapacityUnit]] = None, workload: Optional[List[WorkloadUnit]] = None):
        self.units: Dict[str, CapacityUnit] = {}
        self.workload: Dict[tuple, WorkloadUnit] = {}
        self.events: List[PlacementFailureEvent] = []
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        for unit in units or []:
            self.units[unit.name] = unit.model_copy(deep=True)
        for item in workload or []:
            self._put(item)

    def _put(self, item: WorkloadUnit):
        namespace = item.namespace or DEFAULT_NAMESPACE
        self.workload[(namespace, item.name)] = item.model_copy(update={"namespace": namespace}, deep=True)

    def _record(self, method: str, *args):
        self.calls.append((method, *args))
        if method in self.fail_on:
            raise self.fail_on[method]

    # ---- placement engine ----

    def _free_memory(self, unit: CapacityUnit) -> int:
        used = sum(w.memory_request for w in self.workload.values() if w.assigned_unit == unit.name)
        return unit.allocatable_memory - used

    def _schedule(self):
        for item in self.workload.values():
            if item.placed:
                continue
            for unit in self.units.values():
                if not (item.tolerates_all(unit.taints) and item.selects(unit.labels)):
                    continue
                if self._free_memory(unit) >= item.memory_request:
                    item.assigned_unit = unit.name
                    break
            else:
                self.events.append(
                    PlacementFailureEvent(
                        workload_name=item.name,
                        namespace=item.namespace,
                        message="0/%d nodes are available" % len(self.units),
                        timestamp=datetime.now(timezone.utc),
                    )
                )

    # ---- ClusterStateStore ----

    async def list_units(self, labels=None) -> List[CapacityUnit]:
        self._record("list_units", labels)
        return [u.model_copy(deep=True) for u in self.units.values() if matches_labels(u.labels, labels)]

    async def list_workload(self, labels=None) -> List[WorkloadUnit]:
        self._record("list_workload", labels)
        return [w.model_copy(deep=True) for w in self.workload.values() if matches_labels(w.labels, labels)]

    async def add_units(self, units) -> None:
        self._record("add_units", [u.name for u in units])
        for unit in units:
            if unit.name in self.units:
                raise ClusterStateError(f"node '{unit.name}' already exists")
            self.units[unit.name] = unit.model_copy(deep=True)
        self._schedule()

    async def delete_unit(self, name) -> None:
        self._record("delete_unit", name)
        self.units.pop(name, None)

    async def create_workload(self, workload) -> None:
        self._record("create_workload", [w.name for w in workload])
        for item in workload:
            self._put(item)
        self._schedule()

    async def delete_workload(self, workload) -> None:
        self._record("delete_workload", [w.name for w in workload])
        for item in workload:
            self.workload.pop((item.namespace or DEFAULT_NAMESPACE, item.name), None)

    async def taint_unit(self, name, taint) -> None:
        self._record("taint_unit", name, taint.key)
        unit = self.units[name]
        unit.taints = [t for t in unit.taints if t.key != taint.key] + [taint]

    async def untaint_unit(self, name, key=None) -> None:
        self._record("untaint_unit", name, key)
        unit = self.units[name]
        if key is None:
            unit.taints = [t for t in unit.taints if t.effect != NO_SCHEDULE]
        else:
            unit.taints = [t for t in unit.taints if t.key != key]
        self._schedule()

    async def list_placement_failure_events(self, since=None) -> List[PlacementFailureEvent]:
        self._record("list_placement_failure_events", since)
        return [e for e in self.events if since is None or e.timestamp >= since]

    # ---- test helpers ----

    def workload_on(self, unit_name: str) -> List[WorkloadUnit]:
        return [w for w in self.workload.values() if w.assigned_unit == unit_name]

    def pending(self) -> List[WorkloadUnit]:
        return [w for w in self.workload.values() if not w.placed]
