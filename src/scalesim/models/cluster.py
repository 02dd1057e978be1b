# src/scalesim/models/cluster.py
"""
Pydantic models for the cluster objects the recommendation engine works on:
capacity units (nodes), capacity pools (worker pools), workload units (pods)
and placement-failure events. They are transient snapshots of the cluster
state store; the store remains the single source of truth.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.k8s_utils import parse_cpu_request, parse_memory_request

POOL_LABEL = "worker.gardener.cloud/pool"
ZONE_LABEL = "topology.kubernetes.io/zone"
REGION_LABEL = "topology.kubernetes.io/region"
HOSTNAME_LABEL = "kubernetes.io/hostname"
INSTANCE_TYPE_LABEL = "node.kubernetes.io/instance-type"
EXISTING_NODE_LABEL = "app.kubernetes.io/existing-node"
TRIAL_RUN_LABEL = "scalesim.io/trial-run"
RELOCATED_FROM_LABEL = "scalesim.io/relocated-from"

NO_SCHEDULE = "NoSchedule"
FAILED_SCHEDULING = "FailedScheduling"


class Taint(BaseModel):
    """A node taint. Only NoSchedule taints influence placement here."""

    key: str
    value: Optional[str] = None
    effect: str = NO_SCHEDULE


class Toleration(BaseModel):
    """
    A pod toleration. An empty key with operator Exists tolerates every taint,
    an empty effect matches every effect.
    """

    key: Optional[str] = None
    value: Optional[str] = None
    effect: Optional[str] = None
    operator: str = "Equal"
    toleration_seconds: Optional[int] = None

    def tolerates(self, taint: Taint) -> bool:
        if self.effect and self.effect != taint.effect:
            return False
        if self.key is None:
            return self.operator == "Exists"
        if self.key != taint.key:
            return False
        return self.operator == "Exists" or self.value == taint.value


class CapacityUnit(BaseModel):
    """
    A schedulable host instance (node) in the cluster.

    Pool membership, zone and instance type are read from the well-known node
    labels so that a unit cloned from a template inherits them unchanged.
    """

    model_config = ConfigDict(frozen=False, extra="forbid")

    name: str = Field(..., description="Node name")
    labels: Dict[str, str] = Field(default_factory=dict, description="Node labels")
    allocatable: Dict[str, str] = Field(default_factory=dict, description="Allocatable resources as quantities")
    capacity: Dict[str, str] = Field(default_factory=dict, description="Capacity resources as quantities")
    taints: List[Taint] = Field(default_factory=list, description="Node taints")

    @property
    def pool(self) -> Optional[str]:
        return self.labels.get(POOL_LABEL)

    @property
    def zone(self) -> Optional[str]:
        return self.labels.get(ZONE_LABEL)

    @property
    def region(self) -> Optional[str]:
        return self.labels.get(REGION_LABEL)

    @property
    def instance_type(self) -> Optional[str]:
        return self.labels.get(INSTANCE_TYPE_LABEL)

    @property
    def is_existing(self) -> bool:
        """True for units mirrored from the real cluster rather than created by the engine."""
        return EXISTING_NODE_LABEL in self.labels

    @property
    def trial_run(self) -> Optional[str]:
        return self.labels.get(TRIAL_RUN_LABEL)

    @property
    def cordoned(self) -> bool:
        return any(t.effect == NO_SCHEDULE for t in self.taints)

    @property
    def allocatable_memory(self) -> int:
        """Allocatable memory in bytes."""
        return parse_memory_request(self.allocatable.get("memory"))


class CapacityPool(BaseModel):
    """
    A worker pool declared in the cluster descriptor.
    The position of a pool in the declared list is its priority.
    """

    name: str
    machine_type: str
    zones: List[str] = Field(default_factory=list)
    maximum: int
    minimum: int = 0


class ContainerRequest(BaseModel):
    name: str = "pause"
    image: str = "registry.k8s.io/pause:3.5"
    requests: Dict[str, str] = Field(default_factory=dict)


class WorkloadUnit(BaseModel):
    """A schedulable work item (pod) with resource requests and placement constraints."""

    name: str
    namespace: Optional[str] = Field(None, description="Resolved to the store's namespace when unset.")
    labels: Dict[str, str] = Field(default_factory=dict)
    node_selector: Dict[str, str] = Field(default_factory=dict)
    containers: List[ContainerRequest] = Field(default_factory=list)
    tolerations: List[Toleration] = Field(default_factory=list)
    topology_spread_constraints: List[Dict[str, Any]] = Field(default_factory=list)
    affinity: Optional[Dict[str, Any]] = None
    scheduler_name: Optional[str] = None
    assigned_unit: Optional[str] = Field(None, description="Name of the node the pod is bound to.")

    @property
    def memory_request(self) -> int:
        """Total memory request across containers, in bytes."""
        return sum(parse_memory_request(c.requests.get("memory")) for c in self.containers)

    @property
    def cpu_request(self) -> int:
        """Total CPU request across containers, in millicores."""
        return sum(parse_cpu_request(c.requests.get("cpu")) for c in self.containers)

    @property
    def placed(self) -> bool:
        return bool(self.assigned_unit)

    def tolerates_all(self, taints: List[Taint]) -> bool:
        return all(any(tol.tolerates(t) for tol in self.tolerations) for t in taints if t.effect == NO_SCHEDULE)

    def selects(self, unit_labels: Dict[str, str]) -> bool:
        """True if the unit labels satisfy the node selector."""
        return all(unit_labels.get(k) == v for k, v in self.node_selector.items())


class PlacementFailureEvent(BaseModel):
    """A FailedScheduling event emitted by the placement engine for a workload unit."""

    workload_name: str
    namespace: str = "default"
    reason: str = FAILED_SCHEDULING
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
