"""Tests for the file loader and the live snapshot scraper."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from skygrid.core import geocodec
from skygrid.core.models import Coordinate
from skygrid.fetch import scraper
from skygrid.fetch.scraper import fetch_snapshot, run_scraper
from skygrid.ingest.loader import chunk_size, index_file, load_file
from skygrid.ingest.parser import CSV_FIELDS
from skygrid.storage.file_storage import FileEntryStore

CSV_TEXT = "\n".join([
    ",".join(CSV_FIELDS),
    "100000,abc123,37.6,-122.4,231.5,90.2,0.0,TEST1,false,false,false,1200,10000,10050,99995,99999",
    "100000,def456,37.7,-122.3,200.0,45.0,0.0,TEST2,false,false,false,1200,9000,9050,99900,99999",
]) + "\n"

SNAPSHOT = {
    "time": 100_000,
    "states": [
        ["abc123", "TEST1", "US", 99_995, 99_999, -122.4, 37.6, 10000.0, False,
         231.5, 90.2, 0.0, None, 10050.0, "1200", False, 0],
    ],
}


# --- Loader ---

def test_load_csv(tmp_path):
    path = tmp_path / "states.csv"
    path.write_text(CSV_TEXT)
    records = load_file(path)
    assert [r.icao24 for r in records] == ["abc123", "def456"]


def test_load_json(tmp_path):
    path = tmp_path / "OpenSkyState100000.json"
    path.write_text(json.dumps(SNAPSHOT))
    records = load_file(path)
    assert len(records) == 1
    assert records[0].time == 99_995


def test_load_rejects_other_extensions(tmp_path):
    path = tmp_path / "states.txt"
    path.write_text(CSV_TEXT)
    with pytest.raises(ValueError):
        load_file(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_file(tmp_path / "nope.csv")
    with pytest.raises(FileNotFoundError):
        load_file(tmp_path)


async def test_index_file_stores_entries(tmp_path):
    data = tmp_path / "states.csv"
    data.write_text(CSV_TEXT)
    config = tmp_path / "config.yaml"
    config.write_text(
        f"storage:\n  base_dir: {tmp_path / 'index'}\n"
        "logging:\n  level: warning\n"
    )

    result = await index_file(data, str(config))

    # def456 is 100 seconds stale.
    assert (result.received, result.indexed, result.dropped) == (2, 1, 1)
    assert result.entries == 4

    store = FileEntryStore(tmp_path / "index")
    geohash = geocodec.encode_hex(Coordinate(37.6, -122.4), 7)
    rows = await store.lookup(27, geohash)
    assert [(r["flight"], r["lat"], r["lon"]) for r in rows] == [("abc123", 37.6, -122.4)]


def _csv_rows(count: int) -> str:
    rows = [",".join(CSV_FIELDS)]
    for i in range(count):
        rows.append(f"100000,a{i:05x},37.6,-122.4,200.0,90.0,0.0,T{i},false,false,false,"
                    f"1200,9000,9050,99995,99999")
    return "\n".join(rows) + "\n"


@pytest.mark.parametrize("max_size, tiers, records, expected", [
    (100_000, 4, 1_000_000, 25_000),
    (8, 4, 5, 2),
    (10, 4, 5, 2),
    (4, 4, 5, 1),
    (0, 4, 30, 30),
    (0, 4, 0, 1),
])
def test_chunk_size(max_size, tiers, records, expected):
    assert chunk_size(max_size, tiers, records) == expected


async def test_index_file_larger_than_queue(tmp_path):
    data = tmp_path / "states.csv"
    data.write_text(_csv_rows(30))
    config = tmp_path / "config.yaml"
    config.write_text(
        "queue:\n  max_size: 8\n"
        f"storage:\n  base_dir: {tmp_path / 'index'}\n"
        "logging:\n  level: warning\n"
    )

    result = await asyncio.wait_for(index_file(data, str(config)), timeout=10)

    assert (result.received, result.indexed, result.entries) == (30, 30, 120)
    store = FileEntryStore(tmp_path / "index")
    geohash = geocodec.encode_hex(Coordinate(37.6, -122.4), 4)
    assert len(await store.lookup(27, geohash)) == 30


# --- Scraper ---

def _mock_client_factory(monkeypatch, handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(scraper.httpx, "AsyncClient",
                        lambda **kwargs: real_client(transport=transport, **kwargs))


async def test_fetch_snapshot_writes_file(tmp_path):
    def handler(request):
        return httpx.Response(200, json=SNAPSHOT)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        path = await fetch_snapshot(client, "https://example.test/states/all", tmp_path)

    assert path.parent == tmp_path
    assert path.name.startswith("OpenSkyState") and path.suffix == ".json"
    assert json.loads(path.read_text()) == SNAPSHOT


async def test_fetch_snapshot_raises_on_http_error(tmp_path):
    def handler(request):
        return httpx.Response(429)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await fetch_snapshot(client, "https://example.test/states/all", tmp_path)
    assert list(tmp_path.iterdir()) == []


async def test_scraper_continues_after_failure(tmp_path, monkeypatch):
    calls = []

    def handler(request):
        calls.append(request.url)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=SNAPSHOT)

    _mock_client_factory(monkeypatch, handler)
    out_dir = tmp_path / "OpenSkyData"

    saved = await run_scraper("https://example.test/states/all", out_dir,
                              interval_seconds=0.01, max_fetches=2)

    assert len(calls) == 2
    assert saved == 1
    assert len(list(out_dir.glob("OpenSkyState*.json"))) == 1


async def test_scraper_rejects_bad_interval(tmp_path):
    with pytest.raises(ValueError):
        await run_scraper("https://example.test/states/all", tmp_path, interval_seconds=0)
