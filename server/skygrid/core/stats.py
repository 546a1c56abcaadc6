"""Indexing statistics and active-aircraft tracking.

Tracks in-memory counters and a sliding window of aircraft that were
recently indexed. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class AircraftActivity:
    """Tracks a single aircraft's recent activity."""
    last_seen: float          # time.monotonic() timestamp
    records_indexed: int = 0


class IndexStats:
    """Thread-safe ingest and query statistics.

    An aircraft is "active" if one of its records was indexed within
    ``active_window_seconds`` (default 120s).
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Ingest counters
        self.records_received: int = 0
        self.records_indexed: int = 0
        self.records_dropped: int = 0
        self.records_rejected: int = 0
        self.records_failed: int = 0
        self.entries_published: int = 0
        self.entries_stored: int = 0
        self.publish_errors: int = 0
        self.storage_errors: int = 0
        self.queue_depth: int = 0
        self.queue_max_depth: int = 0

        # Query counters
        self.queries_served: int = 0
        self.lookups_issued: int = 0
        self.lookup_errors: int = 0

        # icao24 → AircraftActivity
        self._aircraft: dict[str, AircraftActivity] = {}

    def record_received(self, count: int = 1) -> None:
        with self._lock:
            self.records_received += count

    def record_indexed(self, icao24: str, entries: int) -> None:
        """Record that a valid record was fanned out into ``entries`` entries."""
        now = time.monotonic()
        with self._lock:
            self.records_indexed += 1
            self.entries_published += entries
            activity = self._aircraft.get(icao24)
            if activity is None:
                self._aircraft[icao24] = AircraftActivity(last_seen=now, records_indexed=1)
            else:
                activity.last_seen = now
                activity.records_indexed += 1

    def record_dropped(self, count: int = 1) -> None:
        with self._lock:
            self.records_dropped += count

    def record_rejected(self, count: int = 1) -> None:
        with self._lock:
            self.records_rejected += count

    def record_failed(self, count: int = 1) -> None:
        """A valid record none of whose entries could be published."""
        with self._lock:
            self.records_failed += count

    def record_publish_error(self) -> None:
        with self._lock:
            self.publish_errors += 1

    def record_stored(self, count: int) -> None:
        with self._lock:
            self.entries_stored += count

    def record_storage_error(self) -> None:
        with self._lock:
            self.storage_errors += 1

    def record_query(self, lookups: int, errors: int) -> None:
        with self._lock:
            self.queries_served += 1
            self.lookups_issued += lookups
            self.lookup_errors += errors

    def update_queue_depth(self, depth: int) -> None:
        with self._lock:
            self.queue_depth = depth
            if depth > self.queue_max_depth:
                self.queue_max_depth = depth

    def _prune_stale_aircraft(self, now: float) -> None:
        """Remove aircraft not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [icao for icao, a in self._aircraft.items() if a.last_seen < cutoff]
        for icao in stale:
            del self._aircraft[icao]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_aircraft(now_mono)

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "records_received": self.records_received,
                "records_indexed": self.records_indexed,
                "records_dropped": self.records_dropped,
                "records_rejected": self.records_rejected,
                "records_failed": self.records_failed,
                "entries_published": self.entries_published,
                "entries_stored": self.entries_stored,
                "publish_errors": self.publish_errors,
                "storage_errors": self.storage_errors,
                "queue_depth": self.queue_depth,
                "queue_max_depth_ever": self.queue_max_depth,
                "queries_served": self.queries_served,
                "lookups_issued": self.lookups_issued,
                "lookup_errors": self.lookup_errors,
                "active_aircraft": {
                    "total": len(self._aircraft),
                    "window_seconds": self._active_window,
                },
            }
