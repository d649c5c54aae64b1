"""Pytest fixtures for the scheduling core and the HTTP API."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from meetbook.calendar import CalendarExporter, DocumentCache
from meetbook.core.config import Settings
from meetbook.domain import WindowSpec
from meetbook.main import create_app
from meetbook.scheduling import AvailabilityService, BookingEngine, HostLockRegistry
from meetbook.stores import JsonFileStore, SqlStore, resolve_store

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# A Monday well in the future, with "now" pinned to the week before
MONDAY = date(2030, 1, 7)
NOW = datetime(2029, 12, 31, 12, 0, tzinfo=timezone.utc)

UID_DOMAIN = "meetbook.test"
BASE_URL = "http://testserver"


def next_monday() -> date:
    """The first Monday strictly after today (for tests that run on the wall clock)."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


def _make_store(kind, tmp_path):
    if kind == "json":
        return JsonFileStore(tmp_path / "data")
    return SqlStore(f"sqlite+aiosqlite:///{tmp_path / 'meetbook.db'}")


@pytest_asyncio.fixture(params=["json", "sql"])
async def store(request, tmp_path):
    """An opened store of each backend kind."""
    store = _make_store(request.param, tmp_path)
    await store.open()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def host(store):
    """A licensed host in UTC with no windows."""
    return await store.create_host(
        email="ada@example.com",
        full_name="Ada Lovelace",
        has_full_license=True,
        timezone="UTC",
    )


@pytest_asyncio.fixture
async def other_host(store):
    """A second licensed host."""
    return await store.create_host(
        email="grace@example.com",
        full_name="Grace Hopper",
        has_full_license=True,
    )


@pytest_asyncio.fixture
async def unlicensed_host(store):
    """A host whose scheduling is disabled, with a Monday window anyway."""
    host = await store.create_host(
        email="charles@example.com",
        full_name="Charles Babbage",
        has_full_license=False,
    )
    await store.replace_windows(host.id, [WindowSpec(1, "09:00", "10:00")])
    return host


@pytest_asyncio.fixture
async def monday_host(store, host):
    """The licensed host with a single Monday 09:00-10:00 window."""
    await store.add_window(host.id, WindowSpec(1, "09:00", "10:00"))
    return host


@pytest.fixture
def exporter():
    return CalendarExporter(uid_domain=UID_DOMAIN)


@pytest.fixture
def cache(tmp_path):
    return DocumentCache(tmp_path / "ics")


@pytest.fixture
def engine(store, exporter, cache):
    return BookingEngine(
        store,
        HostLockRegistry(),
        exporter,
        cache=cache,
        public_base_url=BASE_URL,
    )


@pytest.fixture
def availability(store):
    return AvailabilityService(store)


# ==================== HTTP ====================


async def _seed(settings: Settings) -> None:
    store = resolve_store(settings)
    await store.open()
    try:
        await store.create_host(
            email="ada@example.com",
            full_name="Ada Lovelace",
            has_full_license=True,
            host_id="host-ada",
        )
        await store.create_host(
            email="grace@example.com",
            full_name="Grace Hopper",
            has_full_license=True,
            host_id="host-grace",
        )
        await store.create_host(
            email="charles@example.com",
            full_name="Charles Babbage",
            has_full_license=False,
            host_id="host-charles",
        )
        await store.replace_windows("host-ada", [WindowSpec(1, "09:00", "10:00")])
        await store.replace_windows("host-charles", [WindowSpec(1, "09:00", "10:00")])
    finally:
        await store.close()


@pytest.fixture(params=["json", "sql"])
def api_settings(request, tmp_path):
    return Settings(
        storage_backend=request.param,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        json_data_dir=tmp_path / "data",
        ics_dir=tmp_path / "ics",
        public_base_url=BASE_URL,
        ics_uid_domain=UID_DOMAIN,
        log_level="DEBUG",
        app_env="test",
    )


@pytest.fixture
def client(api_settings):
    """A TestClient over a freshly seeded store of each backend kind."""
    asyncio.run(_seed(api_settings))
    with TestClient(create_app(api_settings)) as test_client:
        yield test_client
