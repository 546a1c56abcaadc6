"""Query service: plans a radius query and merges the store lookups.

One lookup is issued per planned key, concurrently, bounded by a semaphore.
Points come back as an unordered list. A query whose cells hold no data
returns an empty list; only a total store failure is an error.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from skygrid.core.errors import StoreUnavailableError
from skygrid.core.models import QueryResult, time_bucket

if TYPE_CHECKING:
    from skygrid.core.models import PlannedKey, QueryRequest
    from skygrid.core.planner import RangeQueryPlanner
    from skygrid.core.stats import IndexStats
    from skygrid.storage.base import EntryStore

log = structlog.get_logger()

DEFAULT_MAX_CONCURRENT_LOOKUPS = 64


class QueryService:
    """Answers radius queries against an EntryStore."""

    def __init__(
        self,
        planner: RangeQueryPlanner,
        storage: EntryStore,
        stats: IndexStats,
        max_concurrent_lookups: int = DEFAULT_MAX_CONCURRENT_LOOKUPS,
    ) -> None:
        self._planner = planner
        self._storage = storage
        self._stats = stats
        self._max_concurrent = max(1, max_concurrent_lookups)

    async def query(self, request: QueryRequest) -> QueryResult:
        tier = self._planner.policy.resolution_for(request.radius)
        keys = self._planner.plan_request(request)

        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def lookup(key: PlannedKey) -> list[dict]:
            async with semaphore:
                return await self._storage.lookup(key.time_bucket, key.geohash)

        results = await asyncio.gather(*(lookup(k) for k in keys), return_exceptions=True)

        points: list[tuple[float, float]] = []
        failed = 0
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                failed += 1
                log.warning("lookup_failed", time_bucket=key.time_bucket,
                            geohash=key.geohash, error=repr(result))
                continue
            points.extend((row["lat"], row["lon"]) for row in result)

        self._stats.record_query(len(keys), failed)

        if keys and failed == len(keys):
            log.error("store_unavailable", lookups=len(keys))
            raise StoreUnavailableError(f"all {len(keys)} lookups failed")

        log.info("query_served", tier=tier, cells=len(keys),
                 points=len(points), failed_lookups=failed)

        return QueryResult(
            tier=tier,
            time_bucket=time_bucket(request.timestamp),
            cells=len(keys),
            points=points,
            failed_lookups=failed,
        )
