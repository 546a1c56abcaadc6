"""SkyGrid core internal data models.

These are plain dataclasses with no framework dependencies.
Raw CSV/JSON and bus messages are converted to/from these at the boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from skygrid.core.errors import PreconditionError

MIN_LAT, MAX_LAT = -90.0, 90.0
MIN_LON, MAX_LON = -180.0, 180.0

# Seconds per time bucket (one store partition per hour).
BUCKET_SECONDS = 3600


def time_bucket(unix_time: float) -> int:
    """Hour partition of a unix timestamp: floor(unix_time / 3600)."""
    return int(unix_time // BUCKET_SECONDS)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        for name, value, lo, hi in (
            ("lat", self.lat, MIN_LAT, MAX_LAT),
            ("lon", self.lon, MIN_LON, MAX_LON),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise PreconditionError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise PreconditionError(f"{name} must be finite, got {value!r}")
            if not lo <= value <= hi:
                raise PreconditionError(f"{name} {value} outside [{lo}, {hi}]")


@dataclass(frozen=True)
class TelemetryRecord:
    """One aircraft state vector, as decoded from a CSV line or JSON element.

    Numeric fields that were absent or unparseable are ``None``; the
    validator, not the parser, decides whether the record is usable.
    """
    icao24: str
    lat: float | None = None
    lon: float | None = None
    time: int | None = None
    last_position_update: float | None = None

    # Carried for future use; not needed by the index.
    callsign: str = ""
    velocity: float | None = None
    heading: float | None = None
    vertical_rate: float | None = None
    on_ground: bool = False
    alert: bool = False
    spi: bool = False
    squawk: int | None = None
    baro_altitude: float | None = None
    geo_altitude: float | None = None
    last_contact: float | None = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    @property
    def time_bucket(self) -> int:
        return time_bucket(self.time)

    def describe(self) -> str:
        return f"time:{self.time}, icao24:{self.icao24}, lat:{self.lat}, lon:{self.lon}"


@dataclass(frozen=True)
class IndexedEntry:
    """The unit written to the store, keyed by (time_bucket, geohash)."""
    time_bucket: int
    geohash: str
    flight: str
    lat: float
    lon: float
    time: int

    @property
    def key(self) -> tuple[int, str]:
        return (self.time_bucket, self.geohash)

    def to_message(self) -> dict:
        return {
            "time_bucket": self.time_bucket,
            "geohash": self.geohash,
            "flight": self.flight,
            "lat": self.lat,
            "lon": self.lon,
            "time": self.time,
        }

    @classmethod
    def from_message(cls, data: dict) -> IndexedEntry:
        return cls(
            time_bucket=int(data["time_bucket"]),
            geohash=str(data["geohash"]),
            flight=str(data["flight"]),
            lat=float(data["lat"]),
            lon=float(data["lon"]),
            time=int(data["time"]),
        )


@dataclass(frozen=True)
class QueryRequest:
    timestamp: int
    center: Coordinate
    radius: float


@dataclass(frozen=True)
class PlannedKey:
    time_bucket: int
    geohash: str


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one batch: received == indexed + dropped + rejected + failed."""
    received: int = 0
    indexed: int = 0
    dropped: int = 0
    rejected: int = 0
    failed: int = 0
    entries: int = 0

    def merge(self, other: IngestResult) -> IngestResult:
        return IngestResult(
            received=self.received + other.received,
            indexed=self.indexed + other.indexed,
            dropped=self.dropped + other.dropped,
            rejected=self.rejected + other.rejected,
            failed=self.failed + other.failed,
            entries=self.entries + other.entries,
        )


@dataclass
class QueryResult:
    tier: int
    time_bucket: int
    cells: int
    points: list[tuple[float, float]] = field(default_factory=list)
    failed_lookups: int = 0
