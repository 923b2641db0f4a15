"""Shared fixtures for order desk tests."""

from pathlib import Path

import pytest

from factories import FakeClock, write_legacy_database
from order_desk.core.database import OrderStore
from order_desk.services.order_repository import OrderRepository


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "orders.db"


@pytest.fixture
def legacy_db_path(db_path) -> Path:
    write_legacy_database(db_path)
    return db_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(db_path):
    store = OrderStore(db_path, fsync=False)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def repository(store, clock) -> OrderRepository:
    return OrderRepository(store, clock=clock)
