"""Tests for GET /api/cities, including the pool leak regression."""

import logging
from decimal import Decimal

import psycopg
import pytest
from fastapi.testclient import TestClient

from app.core.pool import PoolManager
from app.main import create_app
from tests.utils.database import FakeDatabase


def test_list_cities_returns_all_rows(client: TestClient, fake_db: FakeDatabase) -> None:
    r = client.get("/api/cities")
    assert r.status_code == 200
    data = r.json()
    assert isinstance(data, list)
    assert len(data) == len(fake_db.rows)
    for item in data:
        assert list(item) == list(fake_db.columns)
    assert data[0] == {
        "id": 1,
        "name": "Hanoi",
        "country": "Vietnam",
        "population": 8053663,
        "area_km2": "3358.6",
    }
    assert fake_db.statements == [("SELECT * FROM cities", None)]


def test_list_cities_keeps_numeric_precision(
    client: TestClient, fake_db: FakeDatabase
) -> None:
    fake_db.rows = [(9, "Big", "Nowhere", 1, Decimal("12345678901234567.123456789"))]
    r = client.get("/api/cities")
    assert r.status_code == 200
    assert r.json()[0]["area_km2"] == "12345678901234567.123456789"
    assert "12345678901234567.123456789" in r.text


def test_list_cities_empty_table(client: TestClient, fake_db: FakeDatabase) -> None:
    fake_db.rows = []
    r = client.get("/api/cities")
    assert r.status_code == 200
    assert r.json() == []


def test_list_cities_query_error(
    client: TestClient, fake_db: FakeDatabase, caplog: pytest.LogCaptureFixture
) -> None:
    fake_db.query_error = psycopg.errors.UndefinedTable(
        'relation "cities" does not exist'
    )
    with caplog.at_level(logging.ERROR, logger="app"):
        r = client.get("/api/cities")
    assert r.status_code == 500
    assert r.json() == {
        "message": "Error fetching cities data",
        "error": 'relation "cities" does not exist',
    }
    assert any("/api/cities" in rec.getMessage() for rec in caplog.records)


def test_list_cities_releases_connection_on_success(
    client: TestClient, pool: PoolManager, fake_db: FakeDatabase
) -> None:
    before = pool.stats()["available"]
    for _ in range(3):
        assert client.get("/api/cities").status_code == 200
        assert pool.stats()["available"] == before
    # Released connections are reused, not reopened.
    assert len(fake_db.connections) == 1
    assert fake_db.opened_cursors == fake_db.closed_cursors


def test_list_cities_releases_connection_on_failure(
    client: TestClient, pool: PoolManager, fake_db: FakeDatabase
) -> None:
    before = pool.stats()["available"]
    fake_db.query_error = psycopg.OperationalError("server closed the connection")
    for _ in range(pool.stats()["max_size"] + 2):
        assert client.get("/api/cities").status_code == 500
    assert pool.stats()["available"] == before

    fake_db.query_error = None
    assert client.get("/api/cities").status_code == 200


def test_list_cities_pool_exhausted(test_settings, make_pool) -> None:
    pool = make_pool(max_size=2, acquire_timeout=0.01)
    held = [pool.acquire(), pool.acquire()]
    try:
        with TestClient(create_app(test_settings, pool=pool)) as c:
            r = c.get("/api/cities")
            assert r.status_code == 500
            assert r.json()["message"] == "Error fetching cities data"
            assert "timed out" in r.json()["error"]
    finally:
        for conn in held:
            pool.release(conn)
