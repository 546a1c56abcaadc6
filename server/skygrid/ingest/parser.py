"""Raw telemetry parsing: OpenSky CSV, OpenSky live JSON and plain mappings.

Structural problems (wrong field count, wrong JSON shape) raise
MalformedRecordError and abort the batch. A scalar that is empty, "null"
or unparseable becomes None; the validator decides what to do with it.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable

from skygrid.core.errors import MalformedRecordError
from skygrid.core.models import TelemetryRecord

# Default column order of the OpenSky historical CSV datasets.
CSV_FIELDS: tuple[str, ...] = (
    "time", "icao24", "lat", "lon", "velocity", "heading", "vertrate",
    "callsign", "onground", "alert", "spi", "squawk", "baroaltitude",
    "geoaltitude", "lastposupdate", "lastcontact",
)
_FIELD_INDEX = {name: i for i, name in enumerate(CSV_FIELDS)}

# Live /states/all arrays need at least up to the squawk column.
MIN_STATE_FIELDS = 15


@dataclass(frozen=True)
class CsvLayout:
    """Maps each CSV column to a field index in CSV_FIELDS (None = ignored)."""
    columns: tuple[int | None, ...] = tuple(range(len(CSV_FIELDS)))

    @classmethod
    def from_header(cls, header: str) -> CsvLayout:
        names = [name.strip() for name in header.split(",")]
        return cls(columns=tuple(_FIELD_INDEX.get(name) for name in names))

    @property
    def is_default(self) -> bool:
        return self.columns == tuple(range(len(CSV_FIELDS)))


DEFAULT_LAYOUT = CsvLayout()


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip().strip('"').strip()
        if value == "" or value.lower() == "null":
            return None
    return value


def parse_float(value: Any) -> float | None:
    value = _clean(value)
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def parse_int(value: Any) -> int | None:
    value = _clean(value)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    result = parse_float(value)
    if result is None or not result.is_integer():
        return None
    return int(result)


def parse_bool(value: Any) -> bool:
    value = _clean(value)
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.lower() == "true"


def parse_text(value: Any) -> str:
    value = _clean(value)
    return "" if value is None else str(value)


def record_from_fields(fields: dict[str, Any]) -> TelemetryRecord:
    """Build a record from values keyed by CSV_FIELDS names."""
    return TelemetryRecord(
        icao24=parse_text(fields.get("icao24")),
        lat=parse_float(fields.get("lat")),
        lon=parse_float(fields.get("lon")),
        time=parse_int(fields.get("time")),
        last_position_update=parse_float(fields.get("lastposupdate")),
        callsign=parse_text(fields.get("callsign")),
        velocity=parse_float(fields.get("velocity")),
        heading=parse_float(fields.get("heading")),
        vertical_rate=parse_float(fields.get("vertrate")),
        on_ground=parse_bool(fields.get("onground")),
        alert=parse_bool(fields.get("alert")),
        spi=parse_bool(fields.get("spi")),
        squawk=parse_int(fields.get("squawk")),
        baro_altitude=parse_float(fields.get("baroaltitude")),
        geo_altitude=parse_float(fields.get("geoaltitude")),
        last_contact=parse_float(fields.get("lastcontact")),
    )


def parse_csv_line(line: str, layout: CsvLayout = DEFAULT_LAYOUT) -> TelemetryRecord:
    parts = line.rstrip("\r\n").split(",")
    if len(parts) != len(layout.columns):
        raise MalformedRecordError(
            f"expected {len(layout.columns)} fields, got {len(parts)}: {line[:80]!r}"
        )
    fields = {
        CSV_FIELDS[index]: value
        for index, value in zip(layout.columns, parts)
        if index is not None
    }
    return record_from_fields(fields)


def parse_csv(lines: Iterable[str]) -> list[TelemetryRecord]:
    """Parse a CSV document whose first line is the header."""
    records = []
    layout = None
    for line in lines:
        if not line.strip():
            continue
        if layout is None:
            layout = CsvLayout.from_header(line)
            continue
        records.append(parse_csv_line(line, layout))
    return records


def record_from_state(state: list) -> TelemetryRecord:
    """Build a record from one OpenSky live state array.

    Live data has no separate position-update time, so the record time and
    the position time are both ``time_position``.
    """
    if not isinstance(state, list) or len(state) < MIN_STATE_FIELDS:
        raise MalformedRecordError(f"state vector too short: {state!r}")
    time_position = parse_int(state[3])
    baro_altitude = parse_float(state[7])
    geo_altitude = parse_float(state[13])
    return TelemetryRecord(
        icao24=parse_text(state[0]),
        callsign=parse_text(state[1]),
        time=time_position,
        last_position_update=None if time_position is None else float(time_position),
        last_contact=parse_float(state[4]),
        lon=parse_float(state[5]),
        lat=parse_float(state[6]),
        baro_altitude=baro_altitude,
        geo_altitude=geo_altitude if geo_altitude is not None else baro_altitude,
        on_ground=parse_bool(state[8]),
        velocity=parse_float(state[9]),
        heading=parse_float(state[10]),
        vertical_rate=parse_float(state[11]),
        squawk=parse_int(state[14]),
        spi=parse_bool(state[15]) if len(state) > 15 else False,
    )


def parse_live_snapshot(data: dict) -> list[TelemetryRecord]:
    """Parse a decoded ``{"time": ..., "states": [[...], ...]}`` snapshot."""
    if not isinstance(data, dict) or "states" not in data:
        raise MalformedRecordError("snapshot must be an object with a 'states' list")
    states = data["states"]
    if states is None:
        return []
    if not isinstance(states, list):
        raise MalformedRecordError("'states' must be a list")
    return [record_from_state(state) for state in states]


def parse_live_json(text: str) -> list[TelemetryRecord]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"invalid JSON: {e}") from e
    return parse_live_snapshot(data)


def parse_mappings(items: list) -> list[TelemetryRecord]:
    """Parse ``[{"icao24": ..., "lat": ..., ...}, ...]`` using CSV field names."""
    if not isinstance(items, list):
        raise MalformedRecordError("'records' must be a list")
    records = []
    for item in items:
        if not isinstance(item, dict):
            raise MalformedRecordError(f"record must be an object, got {item!r}")
        records.append(record_from_fields(item))
    return records
