# tests/api/test_health.py

from scalesim import __version__


def test_health_returns_ok(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


def test_version(client):
    response = client.get("/api/v1/version")

    assert response.status_code == 200
    assert response.json()["version"] == __version__
