"""Health check and monitoring endpoints."""

from __future__ import annotations

import shutil
from pathlib import Path

from fastapi import APIRouter

from skygrid.core.models import BUCKET_SECONDS

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from skygrid.main import get_config, get_stats

    stats = get_stats()
    config = get_config()

    storage_path = Path(config.storage.base_dir)
    try:
        disk = shutil.disk_usage(storage_path if storage_path.exists() else ".")
        disk_free_gb = round(disk.free / (1024 ** 3), 1)
        storage_writable = True
    except OSError:
        disk_free_gb = -1
        storage_writable = False

    snapshot = stats.snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "queue_backend": config.queue.backend,
        "queue_depth": snapshot["queue_depth"],
        "storage_writable": storage_writable,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats() -> dict:
    """Ingest and query counters plus the number of recently seen aircraft."""
    from skygrid.main import get_stats

    return get_stats().snapshot()


@router.get("/config")
async def get_index_config() -> dict:
    """Index layout shared by writers and readers of the store."""
    from skygrid.main import get_config, get_planner

    config = get_config()
    planner = get_planner()
    return {
        "tiers": list(config.index.tiers),
        "step_count": planner.step_count,
        "cells_per_query": planner.plan_size,
        "radius_thresholds": [list(t) for t in config.index.radius_thresholds],
        "finest_tier": config.index.finest_tier,
        "staleness_seconds": config.index.staleness_seconds,
        "time_bucket_seconds": BUCKET_SECONDS,
        "max_batch_size": config.limits.max_batch_size,
    }
