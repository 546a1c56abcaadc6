"""Radius to key precision (tier) policy.

A deliberately coarse step table so the number of cells a query touches
stays in a predictable range. Each threshold is inclusive on its lower side.
"""

from __future__ import annotations

import math

from skygrid.core.errors import PreconditionError

# (minimum radius, tier), checked top to bottom.
DEFAULT_RADIUS_THRESHOLDS: tuple[tuple[float, int], ...] = (
    (625, 4),
    (156, 5),
    (39, 6),
)
DEFAULT_FINEST_TIER = 7


class ResolutionPolicy:
    """Maps a query radius to a geohash tier (number of hex digits)."""

    def __init__(
        self,
        thresholds: tuple[tuple[float, int], ...] = DEFAULT_RADIUS_THRESHOLDS,
        finest_tier: int = DEFAULT_FINEST_TIER,
    ) -> None:
        ordered = tuple((float(r), int(t)) for r, t in thresholds)
        if any(a[0] <= b[0] for a, b in zip(ordered, ordered[1:])):
            raise ValueError("radius thresholds must be strictly decreasing")
        self._thresholds = ordered
        self._finest_tier = int(finest_tier)

    @property
    def tiers(self) -> tuple[int, ...]:
        """Every tier this policy can return."""
        return tuple(t for _, t in self._thresholds) + (self._finest_tier,)

    def resolution_for(self, radius: float) -> int:
        if isinstance(radius, bool) or not isinstance(radius, (int, float)):
            raise PreconditionError(f"radius must be a number, got {radius!r}")
        if not math.isfinite(radius) or radius <= 0:
            raise PreconditionError(f"radius must be finite and > 0, got {radius}")
        for min_radius, tier in self._thresholds:
            if radius >= min_radius:
                return tier
        return self._finest_tier
