"""Tests for health endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from sealsign_api.main import app

client = TestClient(app)


def test_health_check():
    """Test health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "sealsign-api"


def test_health_echoes_correlation_id():
    response = client.get("/health", headers={"x-correlation-id": "abc-123"})
    assert response.headers["x-correlation-id"] == "abc-123"


@patch("sealsign_api.main._check_migrations", return_value=True)
@patch("sealsign_api.main._check_database", return_value=True)
def test_readiness_check(mock_db, mock_migrations):
    """Test readiness endpoint."""
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["redis"] is None


@patch("sealsign_api.main._check_migrations", return_value=True)
@patch("sealsign_api.main._check_database", return_value=True)
def test_readiness_fails_without_object_storage(mock_db, mock_migrations):
    store = MagicMock()
    store.ping.return_value = False
    with patch("sealsign_api.main.get_blob_store", return_value=store):
        response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["object_storage"] is False


@patch("sealsign_api.main._check_migrations")
@patch("sealsign_api.main._check_database", return_value=False)
def test_readiness_skips_migrations_without_database(mock_db, mock_migrations):
    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["migrations"] is False
    mock_migrations.assert_not_called()


def test_root():
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert data["service"] == "SealSign API"
