"""Tests for the ingest, query and monitoring API endpoints."""

from __future__ import annotations

import json

import pytest

import skygrid.main as main_module
from skygrid.core import geocodec
from skygrid.core.models import Coordinate
from skygrid.ingest.parser import CSV_FIELDS

CSV_BODY = "\n".join([
    ",".join(CSV_FIELDS),
    "100000,ABC123,37.6,-122.4,231.5,90.2,0.0,TEST1,false,false,false,1200,10000,10050,99995,99999",
    "100000,DEF456,37.61,-122.41,200.0,45.0,0.0,TEST2,false,false,false,1200,9000,9050,99990,99999",
    "100000,OLD001,37.62,-122.42,200.0,45.0,0.0,TEST3,false,false,false,1200,9000,9050,99900,99999",
])

POINTS_QUERY = {"timestamp": 100_000, "latitude": 37.6, "longitude": -122.4, "radius": 50}


async def _post_csv(client, body=CSV_BODY):
    return await client.post(
        "/api/v1/records",
        content=body,
        headers={"content-type": "text/csv"},
    )


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["queue_backend"] == "asyncio"
    assert set(data) == {"status", "version", "uptime_seconds", "queue_backend",
                         "queue_depth", "storage_writable", "disk_free_gb"}


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/v1/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["records_received"] == 0
    assert data["active_aircraft"]["total"] == 0


@pytest.mark.asyncio
async def test_config_endpoint(client):
    resp = await client.get("/api/v1/config")
    assert resp.status_code == 200
    data = resp.json()
    assert data["tiers"] == [4, 5, 6, 7]
    assert data["cells_per_query"] == 1681
    assert data["staleness_seconds"] == 15
    assert data["time_bucket_seconds"] == 3600


@pytest.mark.asyncio
async def test_submit_csv(client):
    resp = await _post_csv(client)
    assert resp.status_code == 200
    data = resp.json()
    assert data["accepted"] is True
    assert data["received"] == 3
    assert data["indexed"] == 2
    assert data["dropped"] == 1
    assert data["entries"] == 8
    assert data["failed"] == 0


@pytest.mark.asyncio
async def test_submit_then_query(client):
    await _post_csv(client)
    await main_module.get_processor().drain()

    resp = await client.get("/api/v1/points", params=POINTS_QUERY)
    assert resp.status_code == 200
    data = resp.json()
    assert data["tier"] == 6
    assert data["time_bucket"] == 27
    assert data["cells"] == 1681
    assert sorted(map(tuple, data["points"])) == [(37.6, -122.4), (37.61, -122.41)]

    resp = await client.get("/api/v1/stats")
    stats = resp.json()
    assert stats["records_indexed"] == 2
    assert stats["entries_stored"] == 8
    assert stats["queries_served"] == 1
    assert stats["active_aircraft"]["total"] == 2


@pytest.mark.asyncio
async def test_query_without_data(client):
    resp = await client.get("/api/v1/points", params=POINTS_QUERY)
    assert resp.status_code == 200
    assert resp.json()["points"] == []


@pytest.mark.asyncio
async def test_submit_live_snapshot(client):
    snapshot = {
        "time": 100_000,
        "states": [
            ["abc123", "TEST1", "US", 99_995, 99_999, -122.4, 37.6, 10000.0, False,
             231.5, 90.2, 0.0, None, 10050.0, "1200", False, 0],
            ["def456", "TEST2", "US", None, 99_999, None, None, None, True,
             0.0, 0.0, 0.0, None, None, None, False, 0],
        ],
    }
    resp = await client.post(
        "/api/v1/records",
        content=json.dumps(snapshot),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["indexed"] == 1
    assert data["dropped"] == 1


@pytest.mark.asyncio
async def test_submit_record_mappings(client):
    payload = {"records": [
        {"icao24": "abc123", "lat": 37.6, "lon": -122.4, "time": 100000, "lastposupdate": 99995},
        {"icao24": "bad001", "lat": 95.0, "lon": -122.4, "time": 100000, "lastposupdate": 99995},
    ]}
    resp = await client.post(
        "/api/v1/records",
        content=json.dumps(payload),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["indexed"] == 1
    assert data["rejected"] == 1


@pytest.mark.asyncio
async def test_invalid_json(client):
    resp = await client.post(
        "/api/v1/records",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["accepted"] is False


@pytest.mark.asyncio
async def test_unknown_json_shape(client):
    resp = await client.post(
        "/api/v1/records",
        content=json.dumps({"hits": []}),
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_malformed_csv_line(client):
    resp = await _post_csv(client, ",".join(CSV_FIELDS) + "\n100000,ABC123,37.6")
    assert resp.status_code == 400
    assert "expected 16 fields" in resp.json()["error"]


@pytest.mark.asyncio
async def test_batch_too_large(client):
    main_module.get_config().limits.max_batch_size = 2
    resp = await _post_csv(client)
    assert resp.status_code == 413
    assert resp.json()["accepted"] is False


@pytest.mark.parametrize("overrides", [
    {"radius": 0},
    {"radius": -5},
    {"latitude": 90},
    {"latitude": -91},
    {"longitude": 180},
    {"timestamp": 0},
    {"radius": "wide"},
])
@pytest.mark.asyncio
async def test_points_rejects_bad_parameters(client, overrides):
    params = dict(POINTS_QUERY, **overrides)
    resp = await client.get("/api/v1/points", params=params)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_points_requires_every_parameter(client):
    resp = await client.get("/api/v1/points", params={"timestamp": 100_000, "radius": 50})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_plan_endpoint(client):
    resp = await client.get("/api/v1/plan", params=dict(POINTS_QUERY, radius=700))
    assert resp.status_code == 200
    data = resp.json()
    assert data["tier"] == 4
    assert data["time_bucket"] == 27
    assert data["cells"] == 1681
    assert len(data["geohashes"]) == 1681
    assert geocodec.encode_hex(Coordinate(37.6, -122.4), 4) in data["geohashes"]
