from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.pool import PoolManager
from app.main import create_app
from tests.utils.database import FakeDatabase, make_descriptor


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def make_pool(
    fake_db: FakeDatabase,
) -> Generator[Callable[..., PoolManager], None, None]:
    """Factory for pools backed by fake_db; every pool is closed after the test."""
    pools: list[PoolManager] = []

    def _make(**overrides: Any) -> PoolManager:
        p = PoolManager(make_descriptor(**overrides), connect_fn=fake_db.connect)
        pools.append(p)
        return p

    yield _make
    for p in pools:
        p.close()


@pytest.fixture
def pool(make_pool: Callable[..., PoolManager]) -> PoolManager:
    return make_pool()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, ENVIRONMENT="local", PORT=3000)  # type: ignore[call-arg]


@pytest.fixture
def client(
    test_settings: Settings, pool: PoolManager
) -> Generator[TestClient, None, None]:
    app = create_app(test_settings, pool=pool)
    with TestClient(app) as c:
        yield c
