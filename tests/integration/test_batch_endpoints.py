"""
Integration tests for the HTTP surface.

Tests batch processing, health and metrics using FastAPI TestClient.
"""

import json
from typing import Any, Dict

from fastapi.testclient import TestClient

from conftest import TEST_PROJECT_ID, TEST_SDK_TOKEN


class TestBatchEndpoint:
    """Test POST /v1/batches."""

    def test_batch_counts(self, test_client: TestClient, capture_event: Dict[str, Any]) -> None:
        other = dict(capture_event, event_type="heartbeat")
        response = test_client.post("/v1/batches", json=[capture_event, other, json.dumps(capture_event)])

        assert response.status_code == 200
        data = response.json()
        assert data["success_count"] == 2
        assert data["failure_count"] == 1
        assert data["skipped_count"] == 1
        assert "request_id" in data

    def test_delivered_body_is_masked(self, test_client: TestClient, capture_event: Dict[str, Any]) -> None:
        capture_event["request"]["headers"] += ";;Authorization:Bearer abc"
        test_client.post("/v1/batches", json=[capture_event])

        send = test_client.app.state.pipeline.publisher._send
        endpoint, body = send.await_args.args
        assert endpoint.startswith("https://")
        assert body["api_key"] == TEST_SDK_TOKEN
        assert body["project_id"] == TEST_PROJECT_ID
        assert body["data"]["request"]["body"]["password"] == "****"
        assert body["data"]["request"]["headers"]["Authorization"] == "****"
        assert body["data"]["request"]["user_agent"] == "curl/8.4.0"

    def test_body_must_be_array(self, test_client: TestClient) -> None:
        response = test_client.post("/v1/batches", json={"event_type": "treblle_log"})
        assert response.status_code == 422

    def test_missing_credentials(self, unconfigured_client: TestClient, capture_event: Dict[str, Any]) -> None:
        response = unconfigured_client.post("/v1/batches", json=[capture_event])

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "configuration_error"
        assert "details" in data


class TestHealthEndpoints:
    """Test liveness and readiness probes."""

    def test_liveness(self, test_client: TestClient) -> None:
        response = test_client.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_ready_when_configured(self, test_client: TestClient) -> None:
        response = test_client.get("/readyz")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_credentials(self, unconfigured_client: TestClient) -> None:
        response = unconfigured_client.get("/readyz")
        assert response.status_code == 503
        assert "credentials" in response.json()["failed_checks"]


class TestMetricsEndpoint:
    """Test Prometheus exposition."""

    def test_metrics_after_batch(self, test_client: TestClient, capture_event: Dict[str, Any]) -> None:
        test_client.post("/v1/batches", json=[capture_event])
        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert 'forwarder_events_processed_total{result="success"} 1.0' in response.text
