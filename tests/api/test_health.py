from __future__ import annotations


def test_health_reports_dependency_status(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "checks": {
            "database": "not_configured",
            "redis": "not_configured",
            "scheduler": "stopped",
        },
    }


def test_ready_without_database(client) -> None:
    assert client.get("/ready").status_code == 200


def test_health_needs_no_auth_and_carries_request_id(client) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "probe-1"})
    assert resp.headers["x-request-id"] == "probe-1"


def test_unknown_route_is_404(client) -> None:
    assert client.get("/definitely-not-here").status_code == 404
