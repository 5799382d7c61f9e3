"""Shared test fixtures for the mid-price tracker."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from midwatch.config import AppSettings, FetchSettings, RetentionSettings, ShutdownSettings
from midwatch.data.database import PriceDatabase
from midwatch.data.store import ObservationStore

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock whose current time is set by the test."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at FIXED_NOW."""
    return FakeClock(FIXED_NOW)


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """Return AppSettings with test defaults (temp database, short intervals)."""
    return AppSettings(
        database_url=f"sqlite:///{tmp_path / 'prices.db'}",
        log_level="DEBUG",
        fetch=FetchSettings(symbols=["BTC", "ETH"], interval_seconds=3600.0),
        retention=RetentionSettings(days=2.0, interval_seconds=3600.0),
        shutdown=ShutdownSettings(http_timeout=1, worker_timeout=1.0),
    )


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncIterator[PriceDatabase]:
    """Connected PriceDatabase backed by a temp file."""
    db = PriceDatabase(str(tmp_path / "test.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def store(database: PriceDatabase, clock: FakeClock) -> ObservationStore:
    """ObservationStore on the temp database, stamped by the fake clock."""
    return ObservationStore(database, clock=clock)
