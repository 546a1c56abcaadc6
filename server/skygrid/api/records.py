"""Telemetry ingest API endpoint.

This is the thin FastAPI adapter. It parses the HTTP body into
TelemetryRecords and hands the batch to the processor.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Request, Response

from skygrid.core.errors import MalformedRecordError
from skygrid.ingest.parser import parse_csv, parse_live_snapshot, parse_mappings

router = APIRouter(prefix="/api/v1")


def _json_response(content: dict, status_code: int) -> Response:
    return Response(
        content=json.dumps(content),
        status_code=status_code,
        media_type="application/json",
    )


def _parse_body(body_bytes: bytes, content_type: str) -> list:
    """Decode a request body into records. Raises MalformedRecordError."""
    try:
        text = body_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedRecordError("body is not UTF-8") from e

    if "csv" in content_type:
        return parse_csv(text.splitlines())

    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedRecordError("invalid JSON") from e

    if isinstance(body, dict) and "states" in body:
        return parse_live_snapshot(body)
    if isinstance(body, dict) and "records" in body:
        return parse_mappings(body["records"])
    raise MalformedRecordError("expected 'states' or 'records'")


@router.post("/records")
async def receive_records(request: Request) -> Response:
    """Receive a batch of telemetry records.

    Accepts:
    - text/csv: OpenSky CSV, first line is the header
    - application/json: an OpenSky live snapshot ``{"time", "states"}``
      or ``{"records": [{...}, ...]}`` using the CSV field names
    """
    from skygrid.main import get_config, get_processor

    processor = get_processor()
    body_bytes = await request.body()
    content_type = request.headers.get("content-type", "application/json")

    try:
        records = _parse_body(body_bytes, content_type)
    except MalformedRecordError as e:
        return _json_response({"accepted": False, "error": str(e)}, 400)

    max_batch = get_config().limits.max_batch_size
    if len(records) > max_batch:
        return _json_response(
            {"accepted": False, "error": f"batch of {len(records)} exceeds {max_batch}"},
            413,
        )

    result = await processor.process_batch(records)
    return _json_response(
        {
            "accepted": True,
            "received": result.received,
            "indexed": result.indexed,
            "dropped": result.dropped,
            "rejected": result.rejected,
            "failed": result.failed,
            "entries": result.entries,
        },
        200,
    )
