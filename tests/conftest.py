"""
Shared pytest fixtures for fixity-spine tests.

This module provides:
- In-memory SQLite engines with the store-master and DAITSS schemas created
- Seeding helpers for packages, copies and pools
- A fake pool server for httpx.MockTransport
- Fixed clocks so expiry and cutoff checks are deterministic

Usage:
    def test_something(daitss_engine, seed_daitss):
        seed_daitss("E1", "http://storage.example.org/packages/E1.000", md5="...")
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from fixity_spine.db import (
    AipTable,
    DaitssBase,
    DaitssCopyTable,
    DaitssPackageTable,
    PoolTable,
    StoreMasterBase,
    StoreMasterCopyTable,
    StoreMasterPackageTable,
    create_fixity_engine,
)
from tests._support import FakePoolServer

SERVER_LOCATION = "http://storage.example.org"
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = item.path.relative_to(Path(__file__).parent)
        if "integration" in str(test_path) or "runner" in str(test_path):
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Keep structlog configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def server_location() -> str:
    return SERVER_LOCATION


# =============================================================================
# Databases
# =============================================================================


@pytest.fixture
def store_master_engine() -> Generator[Engine, None, None]:
    engine = create_fixity_engine("sqlite://")
    StoreMasterBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def daitss_engine() -> Generator[Engine, None, None]:
    engine = create_fixity_engine("sqlite://")
    DaitssBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed_pool(store_master_engine: Engine) -> Callable[..., int]:
    def _seed(services_location: str, **fields) -> int:
        with Session(store_master_engine) as session:
            pool = PoolTable(services_location=services_location, **fields)
            session.add(pool)
            session.commit()
            return pool.id

    return _seed


@pytest.fixture
def seed_store_master(store_master_engine: Engine) -> Callable[..., None]:
    """Add a package with a copy at each of ``locations``."""
    pool_ids: dict[str, int] = {}

    def _seed(
        name: str,
        *locations: str,
        ieid: str | None = None,
        extant: bool = True,
        stored_at: datetime = datetime(2026, 1, 1, tzinfo=UTC),
    ) -> None:
        with Session(store_master_engine) as session:
            package = StoreMasterPackageTable(name=name, ieid=ieid or name.split(".")[0], extant=extant)
            session.add(package)
            session.flush()
            for location in locations:
                host = location.split("/")[2]
                if host not in pool_ids:
                    pool = PoolTable(services_location=f"http://{host}/services")
                    session.add(pool)
                    session.flush()
                    pool_ids[host] = pool.id
                session.add(
                    StoreMasterCopyTable(
                        package_id=package.id,
                        pool_id=pool_ids[host],
                        store_location=location,
                        stored_at=stored_at,
                    )
                )
            session.commit()

    return _seed


@pytest.fixture
def seed_daitss(daitss_engine: Engine) -> Callable[..., None]:
    """Add a DAITSS package with one AIP and one stored copy."""

    def _seed(
        ieid: str,
        url: str,
        md5: str = "b" * 32,
        sha1: str | None = "a" * 40,
        size: int | None = 8192,
        timestamp: datetime = datetime(2026, 1, 1, tzinfo=UTC),
    ) -> None:
        with Session(daitss_engine) as session:
            if session.get(DaitssPackageTable, ieid) is None:
                session.add(DaitssPackageTable(id=ieid, uri=f"info:fda/daitss/{ieid}"))
                session.flush()
            aip = AipTable(package_id=ieid)
            session.add(aip)
            session.flush()
            session.add(DaitssCopyTable(aip_id=aip.id, url=url, md5=md5, sha1=sha1, size=size, timestamp=timestamp))
            session.commit()

    return _seed


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def pool_server() -> FakePoolServer:
    return FakePoolServer()
