# tests/api/conftest.py
"""
Shared fixtures for API tests.
Uses FastAPI's TestClient with dependency overrides to inject an in-memory cluster.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from scalesim.api.app import create_app
from scalesim.api.dependencies import get_cluster_store, get_descriptor_provider, get_price_table
from scalesim.core.config import config
from scalesim.models.cluster import CapacityPool


@pytest.fixture(autouse=True)
def fast_rounds(monkeypatch):
    """Keeps trials that never fully converge from waiting the production timeouts."""
    monkeypatch.setattr(config, "ROUND_TIMEOUT_SECONDS", 0.2)
    monkeypatch.setattr(config, "SCALE_DOWN_TIMEOUT_SECONDS", 0.2)
    monkeypatch.setattr(config, "POLL_INTERVAL_SECONDS", 0.01)


@pytest.fixture
def pools():
    return [
        CapacityPool(name="small", machine_type="m5.large", zones=["eu-west-1a"], maximum=4),
        CapacityPool(name="large", machine_type="m5.2xlarge", zones=["eu-west-1a"], maximum=2),
    ]


@pytest.fixture
def mock_descriptor(pools):
    """Returns a descriptor provider that knows a single cluster, 'my-shoot'."""
    descriptor = MagicMock()
    descriptor.get_pools.return_value = pools
    return descriptor


@pytest.fixture
def client(template_store, mock_descriptor, price_table):
    """Creates a TestClient with dependency overrides for the store, descriptor and prices."""
    app = create_app()
    app.dependency_overrides[get_cluster_store] = lambda: template_store
    app.dependency_overrides[get_descriptor_provider] = lambda: mock_descriptor
    app.dependency_overrides[get_price_table] = lambda: price_table
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
