"""Record processor: runs parsed telemetry through the index writer and
drains the entry queue into storage.

This is the ingest-side business logic. It depends on the EntryQueue and
EntryStore protocols, not concrete implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from skygrid.core.errors import PreconditionError
from skygrid.core.models import IngestResult

if TYPE_CHECKING:
    from skygrid.core.models import IndexedEntry, TelemetryRecord
    from skygrid.core.stats import IndexStats
    from skygrid.core.writer import IndexWriter
    from skygrid.queue.base import EntryQueue
    from skygrid.storage.base import EntryStore

log = structlog.get_logger()


class RecordProcessor:
    """Indexes batches of records and persists the resulting entries."""

    def __init__(
        self,
        writer: IndexWriter,
        queue: EntryQueue,
        storage: EntryStore,
        stats: IndexStats,
    ) -> None:
        self._writer = writer
        self._queue = queue
        self._storage = storage
        self._stats = stats

    async def process_batch(self, records: list[TelemetryRecord]) -> IngestResult:
        """Index every record of an already parsed batch."""
        self._stats.record_received(len(records))

        indexed = dropped = rejected = failed = entries = 0
        for record in records:
            try:
                published = await self._writer.write(record)
            except PreconditionError as e:
                # Passed validation but the coordinate is out of range.
                rejected += 1
                self._stats.record_rejected()
                log.warning("record_rejected", icao24=record.icao24, error=str(e))
                continue

            if published:
                indexed += 1
                entries += len(published)
            elif self._writer.accepts(record):
                failed += 1
            else:
                dropped += 1

        self._stats.update_queue_depth(self._queue.qsize())

        if indexed or failed:
            log.info("records_indexed", count=indexed, entries=entries,
                     dropped=dropped, rejected=rejected, failed=failed)

        return IngestResult(
            received=len(records),
            indexed=indexed,
            dropped=dropped,
            rejected=rejected,
            failed=failed,
            entries=entries,
        )

    async def _store(self, entry: IndexedEntry) -> None:
        try:
            await self._storage.store(entry)
            self._stats.record_stored(1)
            log.debug("entry_stored", flight=entry.flight,
                      geohash=entry.geohash, time_bucket=entry.time_bucket)
        except Exception:
            log.error("storage_write_failed", flight=entry.flight,
                      geohash=entry.geohash, exc_info=True)
            self._stats.record_storage_error()

    async def run_storage_consumer(self) -> None:
        """Consume from the queue and write to storage. Runs as a background task."""
        log.info("storage_consumer_started")
        while True:
            entry = await self._queue.get()
            await self._store(entry)
            self._stats.update_queue_depth(self._queue.qsize())

    async def drain(self) -> int:
        """Store every entry currently queued. Returns how many were handled."""
        handled = 0
        while self._queue.qsize() > 0:
            entry = await self._queue.get()
            await self._store(entry)
            handled += 1
        self._stats.update_queue_depth(self._queue.qsize())
        return handled
