"""Tests for health endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    from learnpath.main import app

    with TestClient(app) as test_client:
        yield test_client


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(client: TestClient) -> None:
    """Test the readiness endpoint."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["cache_backend"] == "memory"
    assert data["cache_ready"] is True
    assert "environment" in data
    assert "debug" in data


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnpath"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "learnpath" in data["message"]
    assert "version" in data
