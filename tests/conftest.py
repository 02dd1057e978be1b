# tests/conftest.py

import pytest

from scalesim.models.cluster import Taint
from scalesim.pricing.price_table import PriceTable

from fakes import InMemoryClusterStore, make_unit


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Pytest fixture to mock environment variables for the config module.

    This fixture runs automatically for every test (`autouse=True`). It uses
    monkeypatch to set environment variables, ensuring that the application's
    config is predictable and isolated from the actual environment.
    """
    monkeypatch.setenv("KUBE_NAMESPACE", "default")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")


@pytest.fixture
def price_table():
    """Hourly prices used across the recommender tests."""
    return PriceTable({"m5.large": 0.1, "m5.xlarge": 0.2, "m5.2xlarge": 0.4})


@pytest.fixture
def cordoned():
    """A taint keeping real workload off template units."""
    return [Taint(key="node.kubernetes.io/unschedulable")]


@pytest.fixture
def fake_store():
    """An empty in-memory cluster state store."""
    return InMemoryClusterStore()


@pytest.fixture
def template_store(cordoned):
    """A store holding one cordoned pre-existing template unit per pool."""
    return InMemoryClusterStore(
        units=[
            make_unit("small-template", pool="small", instance_type="m5.large", memory="8Gi", existing=True, taints=cordoned),
            make_unit("large-template", pool="large", instance_type="m5.2xlarge", memory="32Gi", existing=True, taints=cordoned),
        ]
    )
