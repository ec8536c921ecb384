"""
Integration tests for health and metrics endpoints.
"""

from typing import Any, Callable, Dict
from unittest.mock import patch

from fastapi.testclient import TestClient


class TestHealthEndpoints:
    """Test liveness and readiness probes."""

    def test_liveness(self, test_client: TestClient) -> None:
        response = test_client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_readiness(self, test_client: TestClient) -> None:
        response = test_client.get("/readyz")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_store_failure(self, test_client: TestClient) -> None:
        store = test_client.app.state.store

        with patch.object(store, "ping", side_effect=RuntimeError("unreachable")):
            response = test_client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["reason"] == "store_unavailable"


class TestMetricsEndpoint:
    """Test Prometheus exposition."""

    def test_metrics_after_create(
        self,
        test_client: TestClient,
        make_paste: Callable[..., Dict[str, Any]],
    ) -> None:
        test_client.post("/", json=make_paste())

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert "blindpaste_pastes_created_total 1.0" in response.text
        assert 'blindpaste_operations_total{operation="create",status="ok"} 1.0' in response.text
        assert "blindpaste_uptime_seconds" in response.text
