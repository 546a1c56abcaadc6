"""Index writer: fans a valid record out into one entry per geohash tier.

Queries at any supported resolution then find matching data without
recomputing keys at read time. Each tier is published independently; a
failure on one tier never stops the others.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import structlog

from skygrid.core import geocodec
from skygrid.core.models import IndexedEntry

if TYPE_CHECKING:
    from skygrid.core.models import TelemetryRecord
    from skygrid.core.stats import IndexStats
    from skygrid.core.validator import RecordValidator

log = structlog.get_logger()

DEFAULT_TIERS: tuple[int, ...] = (4, 5, 6, 7)


class EntrySink(Protocol):
    """Anything that accepts indexed entries (usually an EntryQueue)."""

    async def put(self, entry: IndexedEntry) -> None: ...


class IndexWriter:
    """Builds and publishes IndexedEntries for valid telemetry records."""

    def __init__(
        self,
        sink: EntrySink,
        validator: RecordValidator,
        stats: IndexStats,
        tiers: tuple[int, ...] = DEFAULT_TIERS,
    ) -> None:
        if not tiers:
            raise ValueError("at least one tier is required")
        self._sink = sink
        self._validator = validator
        self._stats = stats
        self.tiers = tuple(tiers)

    def accepts(self, record: TelemetryRecord) -> bool:
        return self._validator.is_valid(record)

    def build_entries(self, record: TelemetryRecord) -> list[IndexedEntry]:
        """Pure fan-out step. Raises PreconditionError on a bad coordinate."""
        coordinate = record.coordinate
        bucket = record.time_bucket
        return [
            IndexedEntry(
                time_bucket=bucket,
                geohash=geocodec.encode_hex(coordinate, tier),
                flight=record.icao24.strip(),
                lat=record.lat,
                lon=record.lon,
                time=record.time,
            )
            for tier in self.tiers
        ]

    async def write(self, record: TelemetryRecord) -> list[IndexedEntry]:
        """Index one record. Returns the entries that were published.

        Stale or incomplete records are dropped without error; they are
        common for data in flight.
        """
        if not self._validator.is_valid(record):
            self._stats.record_dropped()
            log.debug("record_dropped", icao24=record.icao24,
                      time=record.time, position_time=record.last_position_update)
            return []

        entries = self.build_entries(record)
        results = await asyncio.gather(*(self._publish(e) for e in entries))
        published = [e for e, ok in zip(entries, results) if ok]

        if published:
            self._stats.record_indexed(record.icao24, len(published))
        else:
            self._stats.record_failed()
            log.warning("record_not_published", icao24=record.icao24,
                        tiers=len(entries))
        return published

    async def _publish(self, entry: IndexedEntry) -> bool:
        try:
            await self._sink.put(entry)
            return True
        except Exception:
            log.error("entry_publish_failed", flight=entry.flight,
                      geohash=entry.geohash, time_bucket=entry.time_bucket,
                      exc_info=True)
            self._stats.record_publish_error()
            return False
