"""Tests for the Prometheus metrics middleware.

prometheus-client keeps one global registry and counters only go up, so
every assertion is on a DELTA: read, act, read again.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth, mint_token


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def _requests(endpoint: str, status_code: str, method: str = "GET") -> float:
    return _get_sample(
        "http_requests_total",
        {"method": method, "endpoint": endpoint, "status_code": status_code},
    )


def test_request_counter_increments(client: TestClient) -> None:
    before = _requests("/health", "200")
    client.get("/health")
    assert _requests("/health", "200") - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before == 1


def test_endpoint_label_is_route_template(client: TestClient) -> None:
    """Per-entity URLs collapse into one series per route."""
    token = mint_token(roles=["admin"])
    before = _requests("/courses/{course_id}", "404")
    client.get(
        "/courses/7b0c9a52-3c1f-4c43-9a55-1d6f6b0f6d11", headers=auth(token)
    )
    client.get(
        "/courses/0f5e2a9e-8d1b-4b5e-9d53-2a7c3c1e9e22", headers=auth(token)
    )
    assert _requests("/courses/{course_id}", "404") - before == 2


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    before = _requests("unmatched", "404")
    client.get("/no/such/page")
    client.get("/another/missing/page")
    assert _requests("unmatched", "404") - before == 2


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "notification_channel_deliveries_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    before = _requests("/metrics", "200")
    client.get("/metrics")
    client.get("/metrics")
    assert _requests("/metrics", "200") == before


def test_active_requests_back_to_baseline(client: TestClient) -> None:
    before = _get_sample("http_active_requests")
    client.get("/health")
    assert _get_sample("http_active_requests") == before
