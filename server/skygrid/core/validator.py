"""Admission filter for telemetry records."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skygrid.core.models import TelemetryRecord

# A position fix this many seconds (or more) older than the record is stale.
DEFAULT_STALENESS_SECONDS = 15


class RecordValidator:
    """Decides whether a record is complete and fresh enough to index."""

    def __init__(self, staleness_seconds: float = DEFAULT_STALENESS_SECONDS) -> None:
        self.staleness_seconds = staleness_seconds

    def is_valid(self, record: TelemetryRecord) -> bool:
        if not record.icao24 or not record.icao24.strip():
            return False
        if record.lat is None or record.lon is None:
            return False
        if record.time is None or record.last_position_update is None:
            return False
        return record.time - record.last_position_update < self.staleness_seconds
