"""Unit tests for health endpoints."""

import json

import pytest
from starlette.requests import Request

from gas_agency.core.exceptions import generic_exception_handler


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["version"] == "1.0.0"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    """Test the Prometheus metrics endpoint."""
    response = await test_client.get("/metrics")

    assert response.status_code == 200
    assert "bookings_created_total" in response.text


@pytest.mark.asyncio
async def test_unhandled_error_is_problem_details():
    """Unexpected exceptions render as a 500 Problem Details body."""

    request = Request({
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": "/api/bookings",
        "root_path": "",
        "query_string": b"",
        "headers": [],
    })
    response = await generic_exception_handler(request, RuntimeError("boom"))

    assert response.status_code == 500
    assert response.media_type == "application/problem+json"
    body = json.loads(response.body)
    assert body["title"] == "Internal Server Error"
    assert body["type"].endswith("/internal-server-error")
    assert body["success"] is False
    assert body["instance"] == "http://testserver/api/bookings"
    assert body["error_id"]
    assert "boom" not in body["detail"]
