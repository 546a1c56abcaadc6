"""Range query planner.

Turns (center, radius, time) into the exact list of (time_bucket, geohash)
pairs to look up. The center key is split into its longitude and latitude
grid coordinates, a fixed square of (2S+1) x (2S+1) neighbouring cells is
enumerated around it, and each neighbour is re-interleaved into a key.

The step count S is fixed, so every plan has the same size whatever the
radius: latency stays predictable at the cost of spatial accuracy (the
square may over- or under-cover the requested radius).

Grid coordinates wrap modulo 2^(2*tier). At the antimeridian this is
correct; at the poles it is not (cells from the opposite pole are
included). Duplicate keys are not removed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from skygrid.core import geocodec
from skygrid.core.models import PlannedKey, time_bucket

if TYPE_CHECKING:
    from skygrid.core.models import Coordinate, QueryRequest
    from skygrid.core.resolution import ResolutionPolicy

DEFAULT_STEP_COUNT = 20


class RangeQueryPlanner:
    """Plans the store lookups for a radius query."""

    def __init__(self, policy: ResolutionPolicy, step_count: int = DEFAULT_STEP_COUNT) -> None:
        if step_count < 0:
            raise ValueError(f"step_count must be >= 0, got {step_count}")
        self.policy = policy
        self.step_count = step_count

    @property
    def plan_size(self) -> int:
        return (2 * self.step_count + 1) ** 2

    def neighbour_keys(self, center: Coordinate, tier: int) -> list[str]:
        """Hex keys of the cell square around ``center`` at ``tier``."""
        bits = 4 * tier
        lon_grid, lat_grid = geocodec.deinterleave(geocodec.encode(center, bits), bits)
        mod = 1 << (2 * tier)

        keys = []
        steps = range(-self.step_count, self.step_count + 1)
        for i in steps:
            this_lat = (lat_grid + mod + i) % mod
            for j in steps:
                this_lon = (lon_grid + mod + j) % mod
                key = geocodec.interleave(this_lon, this_lat, bits)
                keys.append(geocodec.key_to_hex(key, tier))
        return keys

    def plan(self, center: Coordinate, radius: float, time: float) -> list[PlannedKey]:
        tier = self.policy.resolution_for(radius)
        bucket = time_bucket(time)
        return [PlannedKey(bucket, key) for key in self.neighbour_keys(center, tier)]

    def plan_request(self, request: QueryRequest) -> list[PlannedKey]:
        return self.plan(request.center, request.radius, request.timestamp)
