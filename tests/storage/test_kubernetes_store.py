# tests/storage/test_kubernetes_store.py
"""
Tests for KubernetesClusterStore with a mocked CoreV1Api.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes_asyncio.client.rest import ApiException

from scalesim.core.exceptions import ClusterStateError
from scalesim.core.scale_down import relocated_copy
from scalesim.models.cluster import CapacityUnit, ContainerRequest, Taint, Toleration, WorkloadUnit
from scalesim.storage.kubernetes_store import KubernetesClusterStore


@pytest.fixture
def api():
    api = MagicMock()
    for method in (
        "list_node",
        "create_node",
        "delete_node",
        "read_node",
        "patch_node",
        "list_namespaced_pod",
        "create_namespaced_pod",
        "delete_namespaced_pod",
        "list_namespaced_event",
    ):
        setattr(api, method, AsyncMock())
    api.api_client.close = AsyncMock()
    return api


@pytest.fixture
def store(api, mocker):
    mocker.patch("scalesim.storage.kubernetes_store.get_core_v1_api", AsyncMock(return_value=api))
    return KubernetesClusterStore(namespace="sim")


def _node(name, labels=None, taints=None):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, labels=labels or {}),
        spec=SimpleNamespace(taints=taints),
        status=SimpleNamespace(allocatable={"memory": "8Gi", "cpu": "2"}, capacity={"memory": "8Gi", "cpu": "2"}),
    )


def _pod(name, phase="Pending", deleting=False):
    return SimpleNamespace(
        name=name,
        metadata=SimpleNamespace(deletion_timestamp=datetime.now(timezone.utc) if deleting else None),
        status=SimpleNamespace(phase=phase),
    )


def _event(name, timestamp, event_time=None):
    return SimpleNamespace(
        involved_object=SimpleNamespace(name=name, namespace="sim"),
        reason="FailedScheduling",
        message="0/1 nodes are available",
        event_time=event_time,
        last_timestamp=timestamp,
        first_timestamp=None,
        metadata=SimpleNamespace(creation_timestamp=None),
    )


async def test_list_units_converts_nodes(store, api):
    api.list_node.return_value = SimpleNamespace(
        items=[_node("node-1", {"app": "x"}, [SimpleNamespace(key="k", value="v", effect="NoSchedule")])]
    )

    units = await store.list_units({"b": "2", "a": "1"})

    api.list_node.assert_awaited_once_with(label_selector="a=1,b=2")
    assert len(units) == 1
    assert units[0].name == "node-1"
    assert units[0].taints == [Taint(key="k", value="v")]
    assert units[0].allocatable_memory == 8 * 1024**3


async def test_api_error_is_wrapped(store, api):
    api.list_node.side_effect = ApiException(status=500, reason="Internal Server Error")

    with pytest.raises(ClusterStateError) as exc_info:
        await store.list_units()

    assert isinstance(exc_info.value.__cause__, ApiException)


async def test_transport_error_is_wrapped(store, api):
    api.list_namespaced_pod.side_effect = ConnectionRefusedError("connection refused")

    with pytest.raises(ClusterStateError):
        await store.list_workload()


async def test_delete_tolerates_missing_objects(store, api):
    api.delete_node.side_effect = ApiException(status=404, reason="Not Found")
    api.delete_namespaced_pod.side_effect = ApiException(status=404, reason="Not Found")

    await store.delete_unit("gone")
    await store.delete_workload([WorkloadUnit(name="gone")])


async def test_delete_propagates_other_errors(store, api):
    api.delete_node.side_effect = ApiException(status=403, reason="Forbidden")

    with pytest.raises(ClusterStateError):
        await store.delete_unit("node-1")


async def test_add_units_sends_node_manifest(store, api):
    unit = CapacityUnit(
        name="small-simrun-abcde",
        labels={"worker.gardener.cloud/pool": "small"},
        allocatable={"memory": "8Gi"},
        capacity={"memory": "8Gi"},
        taints=[Taint(key="scalesim.io/trial-run", value="small-1")],
    )

    await store.add_units([unit])

    body = api.create_node.call_args.kwargs["body"]
    assert body["kind"] == "Node"
    assert body["metadata"]["name"] == "small-simrun-abcde"
    assert body["spec"]["taints"] == [{"key": "scalesim.io/trial-run", "value": "small-1", "effect": "NoSchedule"}]
    assert body["status"]["allocatable"] == {"memory": "8Gi"}


async def test_create_workload_sends_pod_manifest(store, api):
    item = WorkloadUnit(
        name="web-1",
        labels={"app": "web"},
        containers=[ContainerRequest(requests={"memory": "1Gi"})],
        tolerations=[Toleration(key="scalesim.io/trial-run", value="small-1")],
        scheduler_name="bin-packing-scheduler",
        assigned_unit="node-1",
    )

    await store.create_workload([item])

    kwargs = api.create_namespaced_pod.call_args.kwargs
    assert kwargs["namespace"] == "sim"
    spec = kwargs["body"]["spec"]
    assert spec["schedulerName"] == "bin-packing-scheduler"
    assert spec["nodeName"] == "node-1"
    assert spec["containers"][0]["resources"]["requests"] == {"memory": "1Gi"}
    assert spec["tolerations"][0]["key"] == "scalesim.io/trial-run"
    assert "affinity" not in spec


async def test_list_workload_skips_finished_and_deleting_pods(store, api):
    pods = [_pod("running", phase="Running"), _pod("done", phase="Succeeded"), _pod("leaving", deleting=True)]
    api.list_namespaced_pod.return_value = SimpleNamespace(items=pods)
    api.api_client.sanitize_for_serialization = MagicMock(
        side_effect=lambda pod: {
            "metadata": {"name": pod.name, "namespace": "sim", "labels": {"app": "web"}},
            "spec": {
                "containers": [{"name": "main", "image": "nginx", "resources": {"requests": {"memory": "1Gi"}}}],
                "nodeName": "node-1",
                "topologySpreadConstraints": [{"maxSkew": 1, "topologyKey": "kubernetes.io/hostname"}],
            },
        }
    )

    workload = await store.list_workload()

    assert [w.name for w in workload] == ["running"]
    assert workload[0].assigned_unit == "node-1"
    assert workload[0].memory_request == 1024**3
    assert workload[0].topology_spread_constraints[0]["maxSkew"] == 1


async def test_taint_replaces_same_key(store, api):
    api.read_node.return_value = _node("node-1", taints=[SimpleNamespace(key="k", value="old", effect="NoSchedule")])

    await store.taint_unit("node-1", Taint(key="k", value="new"))

    body = api.patch_node.call_args.kwargs["body"]
    assert body == {"spec": {"taints": [{"key": "k", "value": "new", "effect": "NoSchedule"}]}}


async def test_untaint_without_matching_key_does_not_patch(store, api):
    api.read_node.return_value = _node("node-1", taints=None)

    await store.untaint_unit("node-1", "k")

    api.patch_node.assert_not_awaited()


async def test_placement_failure_events_are_filtered_by_time(store, api):
    now = datetime.now(timezone.utc)
    api.list_namespaced_event.return_value = SimpleNamespace(
        items=[
            _event("old", now - timedelta(minutes=5)),
            _event("new", None, event_time=now),
        ]
    )

    events = await store.list_placement_failure_events(since=now - timedelta(minutes=1))

    assert [e.workload_name for e in events] == ["new"]
    assert api.list_namespaced_event.call_args.kwargs["field_selector"] == "reason=FailedScheduling"


async def test_missing_configuration_raises(mocker):
    mocker.patch("scalesim.storage.kubernetes_store.get_core_v1_api", AsyncMock(return_value=None))

    with pytest.raises(ClusterStateError):
        await KubernetesClusterStore(namespace="sim").list_units()


async def test_close_releases_client(store, api):
    await store.list_units()

    await store.close()

    api.api_client.close.assert_awaited_once()
    assert store._api is None


async def test_workload_created_without_namespace_uses_store_namespace(store, api):
    await store.create_workload([WorkloadUnit(name="web-1"), WorkloadUnit(name="web-2", namespace="other")])

    namespaces = [c.kwargs["namespace"] for c in api.create_namespaced_pod.call_args_list]
    assert namespaces == ["sim", "other"]
    assert api.create_namespaced_pod.call_args_list[0].kwargs["body"]["metadata"]["namespace"] == "sim"


async def test_relocated_pod_keeps_node_selector_and_tolerations(store, api):
    api.list_namespaced_pod.return_value = SimpleNamespace(items=[_pod("gpu-job", phase="Running")])
    api.api_client.sanitize_for_serialization = MagicMock(
        return_value={
            "metadata": {"name": "gpu-job", "namespace": "sim", "labels": {"app": "train"}},
            "spec": {
                "containers": [{"name": "main", "image": "trainer", "resources": {"requests": {"memory": "4Gi"}}}],
                "nodeName": "gpu-node-1",
                "nodeSelector": {"worker.gardener.cloud/pool": "gpu"},
                "tolerations": [
                    {"operator": "Exists"},
                    {
                        "key": "node.kubernetes.io/not-ready",
                        "operator": "Exists",
                        "effect": "NoExecute",
                        "tolerationSeconds": 300,
                    },
                ],
            },
        }
    )

    (workload,) = await store.list_workload()
    copy = relocated_copy(workload, "gpu-node-1", "bin-packing-scheduler")
    await store.create_workload([copy])

    spec = api.create_namespaced_pod.call_args.kwargs["body"]["spec"]
    assert spec["nodeSelector"] == {"worker.gardener.cloud/pool": "gpu"}
    assert spec["tolerations"] == [
        {"operator": "Exists"},
        {"key": "node.kubernetes.io/not-ready", "operator": "Exists", "effect": "NoExecute", "tolerationSeconds": 300},
    ]
    assert "nodeName" not in spec
    assert spec["schedulerName"] == "bin-packing-scheduler"
