"""
Request observability tests.
"""

import logging

import pytest

from backend.app.core.observability import CorrelationIdFilter, correlation_id_var


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Correlation-ID"] == "req-123"
    assert float(response.headers["X-Process-Time"]) >= 0


@pytest.mark.asyncio
async def test_correlation_id_is_generated(client):
    response = await client.get("/")

    assert len(response.headers["X-Correlation-ID"]) == 32


@pytest.mark.asyncio
async def test_health_reports_redis(client):
    response = await client.get("/health")

    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"


def test_filter_stamps_current_correlation_id():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("abc")
    try:
        CorrelationIdFilter().filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "abc"


@pytest.mark.asyncio
async def test_error_responses_are_logged_as_warnings(client, caplog):
    with caplog.at_level(logging.WARNING, logger="parcel_marketplace.requests"):
        await client.get("/v1/users/me")

    records = [r for r in caplog.records if r.name == "parcel_marketplace.requests"]
    assert records and records[-1].status_code == 401
