"""Tests for GET /: database round-trip health check."""

import logging

import psycopg
import pytest
from fastapi.testclient import TestClient

from app.core.pool import PoolManager
from app.main import create_app
from tests.utils.database import FakeDatabase


def test_health_ok(client: TestClient, fake_db: FakeDatabase) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"message": "Database connection successful", "status": "OK"}
    assert fake_db.statements == [("SELECT NOW()", None)]


def test_health_database_unreachable(
    client: TestClient, fake_db: FakeDatabase, caplog: pytest.LogCaptureFixture
) -> None:
    fake_db.connect_error = psycopg.OperationalError(
        'connection to server at "db.test", port 5432 failed: Connection refused'
    )
    with caplog.at_level(logging.ERROR, logger="app"):
        r = client.get("/")
    assert r.status_code == 500
    body = r.json()
    assert body["message"] == "Database connection failed"
    assert body["status"] == "Error"
    assert "Connection refused" in body["error"]
    assert any("Database connection error" in rec.getMessage() for rec in caplog.records)


def test_health_query_error(client: TestClient, fake_db: FakeDatabase) -> None:
    fake_db.query_error = psycopg.errors.QueryCanceled("canceling statement due to statement timeout")
    r = client.get("/")
    assert r.status_code == 500
    assert r.json()["error"] == "canceling statement due to statement timeout"


def test_health_pool_exhausted(test_settings, make_pool) -> None:
    pool = make_pool(max_size=1, acquire_timeout=0.01)
    held = pool.acquire()
    try:
        with TestClient(create_app(test_settings, pool=pool)) as c:
            r = c.get("/")
        assert r.status_code == 500
        assert r.json()["error"].startswith("timed out")
    finally:
        pool.release(held)


def test_health_error_never_empty(client: TestClient, fake_db: FakeDatabase) -> None:
    fake_db.query_error = psycopg.OperationalError()
    r = client.get("/")
    assert r.status_code == 500
    assert r.json()["error"] == "OperationalError"


def test_health_does_not_leak(client: TestClient, pool: PoolManager, fake_db: FakeDatabase) -> None:
    before = pool.stats()["available"]
    client.get("/")
    fake_db.query_error = psycopg.OperationalError("gone")
    client.get("/")
    assert pool.stats()["available"] == before
