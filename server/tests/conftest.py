"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import skygrid.main as main_module
from skygrid.config import AppConfig
from skygrid.core.models import TelemetryRecord
from skygrid.main import build_components

# 100000 falls in hour bucket 27.
SCENARIO_TIME = 100_000


@pytest.fixture(autouse=True)
def _init_server(tmp_path_factory):
    """Initialize server singletons for every test, using a temp directory."""
    config = AppConfig()
    config.storage.base_dir = str(tmp_path_factory.mktemp("data"))
    config.logging.level = "warning"

    # Patch module-level singletons
    main_module._config = config
    main_module._components = build_components(config)

    yield

    # Cleanup
    main_module._config = None
    main_module._components = None


@pytest.fixture
def components():
    return main_module._components


@pytest.fixture
async def client():
    from skygrid.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _make_record(**overrides) -> TelemetryRecord:
    """A fresh, valid record over San Francisco."""
    fields = dict(
        icao24="ABC123",
        lat=37.6,
        lon=-122.4,
        time=SCENARIO_TIME,
        last_position_update=SCENARIO_TIME - 5,
    )
    fields.update(overrides)
    return TelemetryRecord(**fields)


@pytest.fixture
def make_record():
    return _make_record
