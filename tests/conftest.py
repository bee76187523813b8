"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import base64
import json
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from treblle_forwarder.config import PublisherSettings, Settings, TreblleSettings
from treblle_forwarder.core.endpoints import EndpointSelector
from treblle_forwarder.core.masking import MaskingEngine, MaskKeywordSet
from treblle_forwarder.core.metrics import MetricsCollector
from treblle_forwarder.core.publisher import DeliveryResponse, TrebllePublisher
from treblle_forwarder.main import create_app

TEST_SDK_TOKEN = "sdk_token_test_123456789abc"
TEST_PROJECT_ID = "project_test_987654321"
TEST_ENDPOINTS = [
    "https://one.example.test",
    "https://two.example.test",
    "https://three.example.test",
]


def encode(value: Any) -> str:
    """Base64 of a JSON value, or of raw text when given a str."""
    text = value if isinstance(value, str) else json.dumps(value)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def encode_body() -> Callable[[Any], str]:
    """Encoder for capture bodies."""
    return encode


@pytest.fixture
def capture_event() -> Dict[str, Any]:
    """A complete, valid capture event for a successful call."""
    return {
        "event_type": "treblle_log",
        "internal_id": "evt-0001",
        "server": {
            "timezone": "Europe/Zagreb",
            "signature": "apim-gateway",
            "protocol": "HTTP/1.1",
            "encoding": "UTF-8",
            "os": {"name": "Linux", "release": "5.15", "architecture": "x64"},
        },
        "request": {
            "timestamp": "2024-05-01T10:00:00.000Z",
            "method": "POST",
            "ip_address": "203.0.113.7",
            "original_url": "https://api.example.test/v1/users",
            "headers": "Content-Type:application/json;;User-Agent:curl/8.4.0;;Host:api.example.test",
            "body": encode({"username": "ana", "password": "hunter2", "profile": {"ssn": "123-45-6789"}}),
        },
        "response": {
            "timestamp": "2024-05-01T10:00:00.250Z",
            "status_code": 201,
            "body_length": 42,
            "headers": "Content-Type:application/json",
            "body": encode({"id": 17, "username": "ana"}),
        },
    }


@pytest.fixture
def failed_capture_event(capture_event: Dict[str, Any]) -> Dict[str, Any]:
    """A capture event for a 404 response with a JSON error body."""
    capture_event["internal_id"] = "evt-0404"
    capture_event["response"] = {
        "timestamp": "2024-05-01T10:00:01.000Z",
        "status_code": 404,
        "body_length": 24,
        "headers": "Content-Type:application/json",
        "body": encode({"message": "not found"}),
    }
    return capture_event


@pytest.fixture
def sleep_mock() -> AsyncMock:
    """Replacement for asyncio.sleep that records delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def make_publisher(sleep_mock: AsyncMock) -> Callable[..., TrebllePublisher]:
    """
    Factory for publishers whose HTTP call is mocked.

    ``responses`` is the sequence of DeliveryResponse (or None for a
    transport failure) returned by successive calls.
    """
    def _make(
        responses: Optional[List[Optional[DeliveryResponse]]] = None,
        max_retries: int = 3,
        additional_keywords: Optional[str] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> TrebllePublisher:
        publisher = TrebllePublisher(
            api_key=TEST_SDK_TOKEN,
            project_id=TEST_PROJECT_ID,
            masking_engine=MaskingEngine(MaskKeywordSet.from_config(additional_keywords)),
            endpoint_selector=EndpointSelector(TEST_ENDPOINTS),
            settings=PublisherSettings(max_retries=max_retries, retry_delay_seconds=10),
            metrics=metrics,
            sleep=sleep_mock,
        )
        publisher._send = AsyncMock(  # type: ignore[method-assign]
            side_effect=list(responses or [DeliveryResponse(status=200, reason="OK")])
        )
        return publisher

    return _make


@pytest.fixture
def test_settings() -> Settings:
    """Settings with credentials and no retry delay."""
    return Settings(
        log_level="DEBUG",
        treblle=TreblleSettings(
            sdk_token=TEST_SDK_TOKEN,
            api_key=TEST_PROJECT_ID,
            endpoints=TEST_ENDPOINTS,
            additional_mask_keywords="authorization,api_token",
        ),
        publisher=PublisherSettings(max_retries=3, retry_delay_seconds=0),
    )


@pytest.fixture
def test_client(test_settings: Settings) -> Generator[TestClient, None, None]:
    """FastAPI test client whose delivery calls always succeed."""
    app = create_app(test_settings)

    with TestClient(app) as client:
        publisher = client.app.state.pipeline.publisher
        publisher._send = AsyncMock(return_value=DeliveryResponse(status=202, reason="Accepted"))
        yield client


@pytest.fixture
def unconfigured_client() -> Generator[TestClient, None, None]:
    """FastAPI test client without Treblle credentials."""
    settings = Settings(
        treblle=TreblleSettings(sdk_token="", api_key="", endpoints=TEST_ENDPOINTS),
    )
    app = create_app(settings)

    with TestClient(app) as client:
        yield client
