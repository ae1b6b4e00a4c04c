"""Tests for rate limiting middleware."""

import time
from unittest.mock import patch

import pytest
import redis
from fastapi import FastAPI
from fastapi.testclient import TestClient

from neurolex_api.middleware.rate_limit import RateLimitMiddleware


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware)

    @app.post("/ping")
    def ping():
        return {"ok": True}

    @app.get("/ping")
    def ping_get():
        return {"ok": True}

    return TestClient(app)


@patch("neurolex_api.middleware.rate_limit.redis_client")
def test_request_within_limit(mock_redis, client):
    mock_redis.pipeline.return_value.execute.return_value = [None, None]

    response = client.post("/ping")

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "30"
    assert response.headers["X-RateLimit-Remaining"] == "29"


@patch("neurolex_api.middleware.rate_limit.redis_client")
def test_exhausted_bucket_returns_429(mock_redis, client):
    mock_redis.pipeline.return_value.execute.return_value = ["0", str(time.time())]

    response = client.post("/ping")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


@patch("neurolex_api.middleware.rate_limit.redis_client")
def test_redis_outage_fails_open(mock_redis, client):
    mock_redis.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")

    response = client.post("/ping")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@patch("neurolex_api.middleware.rate_limit.redis_client")
def test_reads_are_not_limited(mock_redis, client):
    response = client.get("/ping")

    assert response.status_code == 200
    mock_redis.pipeline.assert_not_called()
