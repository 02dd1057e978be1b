# src/scalesim/storage/kubernetes_store.py
"""
Cluster state store backed by the Kubernetes API of the virtual cluster.

Nodes and pods are read with kubernetes_asyncio and converted to the domain
models; created objects are sent as plain manifests so that fields the
client models do not know about (e.g. pass-through affinity) survive.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from kubernetes_asyncio.client.rest import ApiException

from ..core.config import config
from ..core.exceptions import ClusterStateError
from ..core.k8s_client import get_core_v1_api
from ..models.cluster import (
    FAILED_SCHEDULING,
    CapacityUnit,
    ContainerRequest,
    PlacementFailureEvent,
    Taint,
    Toleration,
    WorkloadUnit,
)
from .base_store import ClusterStateStore

logger = logging.getLogger(__name__)

_FINISHED_PHASES = ("Succeeded", "Failed")


def _label_selector(labels: Optional[Dict[str, str]]) -> Optional[str]:
    if not labels:
        return None
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _toleration_manifest(toleration: Toleration) -> Dict[str, Any]:
    manifest = {
        "key": toleration.key,
        "operator": toleration.operator,
        "value": toleration.value,
        "effect": toleration.effect,
        "tolerationSeconds": toleration.toleration_seconds,
    }
    return {k: v for k, v in manifest.items() if v is not None}


class KubernetesClusterStore(ClusterStateStore):
    def __init__(self, namespace: Optional[str] = None, kubeconfig: Optional[str] = None):
        self.namespace = namespace or config.KUBE_NAMESPACE
        self.kubeconfig = kubeconfig
        self._api = None

    async def _ensure_client(self):
        """
        Lazily initialize the Kubernetes Async client using the centralized thread-safe loader.
        """
        if self._api:
            return self._api

        self._api = await get_core_v1_api(self.kubeconfig)
        if not self._api:
            raise ClusterStateError("Kubernetes configuration could not be loaded.")
        return self._api

    @asynccontextmanager
    async def _call(self, action: str, ignore_not_found: bool = False):
        try:
            yield
        except ApiException as e:
            if ignore_not_found and e.status == 404:
                logger.debug("%s: object already gone.", action)
                return
            logger.error("Kubernetes API error while trying to %s: %s", action, e.reason)
            raise ClusterStateError(f"Failed to {action}: {e.status} {e.reason}") from e
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("Transport error while trying to %s: %s", action, e)
            raise ClusterStateError(f"Failed to {action}: {e}") from e

    # ---- capacity units ----

    async def list_units(self, labels: Optional[Dict[str, str]] = None) -> List[CapacityUnit]:
        api = await self._ensure_client()
        async with self._call("list nodes"):
            nodes = await api.list_node(label_selector=_label_selector(labels))
        return [self._to_unit(node) for node in nodes.items or []]

    async def add_units(self, units: List[CapacityUnit]) -> None:
        api = await self._ensure_client()
        for unit in units:
            async with self._call(f"create node '{unit.name}'"):
                await api.create_node(body=self._node_manifest(unit))
            logger.debug("Created node '%s'", unit.name)

    async def delete_unit(self, name: str) -> None:
        api = await self._ensure_client()
        async with self._call(f"delete node '{name}'", ignore_not_found=True):
            await api.delete_node(name=name)
            logger.debug("Deleted node '%s'", name)

    async def taint_unit(self, name: str, taint: Taint) -> None:
        api = await self._ensure_client()
        async with self._call(f"taint node '{name}'"):
            node = await api.read_node(name=name)
            taints = [t for t in self._taints_of(node) if t.key != taint.key]
            taints.append(taint)
            await api.patch_node(name=name, body={"spec": {"taints": [t.model_dump() for t in taints]}})
        logger.debug("Tainted node '%s' with %s", name, taint.key)

    async def untaint_unit(self, name: str, key: Optional[str] = None) -> None:
        api = await self._ensure_client()
        async with self._call(f"untaint node '{name}'"):
            node = await api.read_node(name=name)
            current = self._taints_of(node)
            if key is None:
                remaining = [t for t in current if t.effect != "NoSchedule"]
            else:
                remaining = [t for t in current if t.key != key]
            if len(remaining) == len(current):
                return
            await api.patch_node(name=name, body={"spec": {"taints": [t.model_dump() for t in remaining]}})
        logger.debug("Removed taint %s from node '%s'", key or "(all NoSchedule)", name)

    # ---- workload ----

    async def list_workload(self, labels: Optional[Dict[str, str]] = None) -> List[WorkloadUnit]:
        api = await self._ensure_client()
        async with self._call("list pods"):
            pods = await api.list_namespaced_pod(namespace=self.namespace, label_selector=_label_selector(labels))
        workload = []
        for pod in pods.items or []:
            if pod.metadata.deletion_timestamp is not None:
                continue
            if pod.status is not None and pod.status.phase in _FINISHED_PHASES:
                continue
            workload.append(self._to_workload(api, pod))
        return workload

    async def create_workload(self, workload: List[WorkloadUnit]) -> None:
        api = await self._ensure_client()
        for item in workload:
            namespace = self._namespace_of(item)
            async with self._call(f"create pod '{namespace}/{item.name}'"):
                await api.create_namespaced_pod(namespace=namespace, body=self._pod_manifest(item))
        logger.debug("Created %d pods", len(workload))

    async def delete_workload(self, workload: List[WorkloadUnit]) -> None:
        api = await self._ensure_client()
        for item in workload:
            namespace = self._namespace_of(item)
            async with self._call(f"delete pod '{namespace}/{item.name}'", ignore_not_found=True):
                await api.delete_namespaced_pod(name=item.name, namespace=namespace, grace_period_seconds=0)
        logger.debug("Deleted %d pods", len(workload))

    # ---- events ----

    async def list_placement_failure_events(self, since: Optional[datetime] = None) -> List[PlacementFailureEvent]:
        api = await self._ensure_client()
        async with self._call("list events"):
            events = await api.list_namespaced_event(
                namespace=self.namespace, field_selector=f"reason={FAILED_SCHEDULING}"
            )
        since = _as_utc(since)
        result = []
        for event in events.items or []:
            timestamp = _as_utc(
                event.event_time or event.last_timestamp or event.first_timestamp or event.metadata.creation_timestamp
            )
            if timestamp is None:
                continue
            if since is not None and timestamp < since:
                continue
            result.append(
                PlacementFailureEvent(
                    workload_name=event.involved_object.name,
                    namespace=event.involved_object.namespace or self.namespace,
                    reason=event.reason,
                    message=event.message,
                    timestamp=timestamp,
                )
            )
        return result

    async def close(self):
        """Close the Kubernetes API client if it exists."""
        if self._api:
            await self._api.api_client.close()
            logger.debug("KubernetesClusterStore client closed.")
            self._api = None

    # ---- conversion helpers ----

    def _namespace_of(self, item: WorkloadUnit) -> str:
        return item.namespace or self.namespace

    @staticmethod
    def _taints_of(node) -> List[Taint]:
        spec = node.spec
        if spec is None or not spec.taints:
            return []
        return [Taint(key=t.key, value=t.value, effect=t.effect) for t in spec.taints]

    def _to_unit(self, node) -> CapacityUnit:
        status = node.status
        return CapacityUnit(
            name=node.metadata.name,
            labels=dict(node.metadata.labels or {}),
            allocatable=dict((status.allocatable if status else None) or {}),
            capacity=dict((status.capacity if status else None) or {}),
            taints=self._taints_of(node),
        )

    def _to_workload(self, api, pod) -> WorkloadUnit:
        # Work on the serialized manifest so affinity and spread constraints stay raw dicts.
        manifest: Dict[str, Any] = api.api_client.sanitize_for_serialization(pod)
        metadata = manifest.get("metadata") or {}
        spec = manifest.get("spec") or {}

        containers = []
        for container in spec.get("containers") or []:
            requests = (container.get("resources") or {}).get("requests") or {}
            containers.append(
                ContainerRequest(
                    name=container.get("name", "main"),
                    image=container.get("image", ""),
                    requests={k: str(v) for k, v in requests.items()},
                )
            )

        tolerations = [
            Toleration(
                key=tol.get("key") or None,
                value=tol.get("value"),
                effect=tol.get("effect") or None,
                operator=tol.get("operator") or "Equal",
                toleration_seconds=tol.get("tolerationSeconds"),
            )
            for tol in spec.get("tolerations") or []
        ]

        return WorkloadUnit(
            name=metadata.get("name"),
            namespace=metadata.get("namespace") or self.namespace,
            labels=dict(metadata.get("labels") or {}),
            node_selector=dict(spec.get("nodeSelector") or {}),
            containers=containers,
            tolerations=tolerations,
            topology_spread_constraints=list(spec.get("topologySpreadConstraints") or []),
            affinity=spec.get("affinity"),
            scheduler_name=spec.get("schedulerName"),
            assigned_unit=spec.get("nodeName"),
        )

    @staticmethod
    def _node_manifest(unit: CapacityUnit) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Node",
            "metadata": {"name": unit.name, "labels": dict(unit.labels)},
            "spec": {"taints": [t.model_dump() for t in unit.taints]},
            "status": {
                "allocatable": dict(unit.allocatable),
                "capacity": dict(unit.capacity),
                "phase": "Running",
            },
        }

    def _pod_manifest(self, item: WorkloadUnit) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "containers": [
                {"name": c.name, "image": c.image, "resources": {"requests": dict(c.requests)}}
                for c in item.containers
            ],
            "tolerations": [_toleration_manifest(t) for t in item.tolerations],
            "terminationGracePeriodSeconds": 0,
        }
        if item.node_selector:
            spec["nodeSelector"] = dict(item.node_selector)
        if item.topology_spread_constraints:
            spec["topologySpreadConstraints"] = item.topology_spread_constraints
        if item.affinity:
            spec["affinity"] = item.affinity
        if item.scheduler_name:
            spec["schedulerName"] = item.scheduler_name
        if item.assigned_unit:
            spec["nodeName"] = item.assigned_unit
        return {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": item.name, "namespace": self._namespace_of(item), "labels": dict(item.labels)},
            "spec": spec,
        }
