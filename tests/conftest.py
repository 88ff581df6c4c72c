"""Pytest configuration and fixtures for HC Register tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

import pytest

from hcregister.boq.master import MasterSchedule, parse_master
from hcregister.config import AppConfig, StorageConfig, SyncConfig, reset_config
from hcregister.db.connection import create_cache_engine
from hcregister.models import BOQItemValues, HouseConnectionRecord
from hcregister.store.local_cache import LocalCache

MASTER_DATA = [
    {
        "section": "A",
        "rows": [
            {"bill": "A", "desc": "PUBLIC DOMAIN WORKS", "kind": "section"},
            {"bill": "A1", "desc": "Excavation", "kind": "group"},
            {"bill": "A1.1", "desc": "Excavate trench", "unit": "m3", "rate": 100.0},
            {"bill": "A1.2", "desc": "Backfill", "unit": "m3", "rate": 10.0},
            {"bill": "A1.N", "desc": "Rates include disposal.", "kind": "note"},
        ],
    },
    {
        "section": "B",
        "rows": [
            {"bill": "B", "desc": "PRIVATE DOMAIN WORKS", "kind": "section"},
            {"bill": "B1.a", "desc": "Pipes", "kind": "subsection"},
            {"bill": "B1.1", "desc": "Lay 110 mm drain pipe", "unit": "m", "rate": 50.0},
            {"bill": "B1.2", "desc": "Provisional sum", "unit": "sum", "rate_str": "PS"},
        ],
    },
]


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment and databases."""
    for name in ("BACKEND_URL", "REDIS_URL", "BACKEND_TIMEOUT", "BOQ_MASTER_PATH", "JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOCAL_CACHE_URL", f"sqlite:///{tmp_path / 'cache.db'}")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'backend.db'}")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def master() -> MasterSchedule:
    """Small master schedule with every row kind."""
    return parse_master(MASTER_DATA, source="test")


@pytest.fixture
def test_config(tmp_path) -> AppConfig:
    """Config with short sync timings for session tests."""
    return AppConfig(
        storage=StorageConfig(url=f"sqlite:///{tmp_path / 'session_cache.db'}"),
        sync=SyncConfig(
            presence_interval_seconds=60.0,
            receive_indicator_seconds=0.05,
            local_indicator_seconds=0.05,
        ),
    )


@pytest.fixture
def make_cache(tmp_path):
    """Factory for independent local caches (one per simulated view)."""
    created = []

    def _make(name: str = "cache") -> LocalCache:
        storage = StorageConfig(url=f"sqlite:///{tmp_path / f'{name}.db'}")
        cache = LocalCache(engine=create_cache_engine(storage.url), storage=storage)
        created.append(cache)
        return cache

    yield _make
    for cache in created:
        cache.engine.dispose()


@pytest.fixture
def cache(make_cache) -> LocalCache:
    return make_cache()


@pytest.fixture
def sample_records() -> list[HouseConnectionRecord]:
    return [
        HouseConnectionRecord(
            id="rec1",
            list_no="L1",
            reference="HC-001",
            surname="Ramdin",
            name="Anil",
            address="12 Royal Road",
            location="Curepipe",
            survey_date="2024-05-02",
            boq={"A1.1": BOQItemValues(est_expr="2", est_val=2.0)},
        ),
        HouseConnectionRecord(
            id="rec2",
            list_no="L1",
            reference="HC-002",
            surname="Li",
            name="Mei",
            address="4 Rue Desforges",
            feasible="Not Feasible",
        ),
        HouseConnectionRecord(
            id="rec3",
            list_no="L2",
            reference="",
            surname="Bholah",
            address="Main Street",
        ),
    ]
