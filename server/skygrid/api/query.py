"""Radius query API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from skygrid.core.errors import PreconditionError, StoreUnavailableError
from skygrid.core.models import Coordinate, QueryRequest, time_bucket

router = APIRouter(prefix="/api/v1")


def _request(timestamp: int, latitude: float, longitude: float, radius: float) -> QueryRequest:
    try:
        return QueryRequest(timestamp=timestamp, center=Coordinate(latitude, longitude),
                            radius=radius)
    except PreconditionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.get("/points")
async def get_points(
    timestamp: int = Query(gt=0),
    latitude: float = Query(gt=-90, lt=90),
    longitude: float = Query(gt=-180, lt=180),
    radius: float = Query(gt=0),
) -> dict:
    """Return every stored (lat, lon) in the cells around the center.

    Coverage is a fixed square of cells, so points outside the radius may be
    returned. An empty ``points`` list means no cell holds data.
    """
    from skygrid.main import get_query_service

    request = _request(timestamp, latitude, longitude, radius)
    try:
        result = await get_query_service().query(request)
    except PreconditionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    return {
        "tier": result.tier,
        "time_bucket": result.time_bucket,
        "cells": result.cells,
        "failed_lookups": result.failed_lookups,
        "points": [[lat, lon] for lat, lon in result.points],
    }


@router.get("/plan")
async def get_plan(
    timestamp: int = Query(gt=0),
    latitude: float = Query(gt=-90, lt=90),
    longitude: float = Query(gt=-180, lt=180),
    radius: float = Query(gt=0),
) -> dict:
    """Return the geohash cells a query would look up, without reading them."""
    from skygrid.main import get_planner

    planner = get_planner()
    request = _request(timestamp, latitude, longitude, radius)
    try:
        tier = planner.policy.resolution_for(request.radius)
        keys = planner.plan_request(request)
    except PreconditionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return {
        "tier": tier,
        "time_bucket": time_bucket(request.timestamp),
        "cells": len(keys),
        "geohashes": [k.geohash for k in keys],
    }
