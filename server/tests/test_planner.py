"""Tests for the range query planner."""

from __future__ import annotations

import pytest

from skygrid.core import geocodec
from skygrid.core.errors import PreconditionError
from skygrid.core.models import Coordinate, QueryRequest
from skygrid.core.planner import RangeQueryPlanner
from skygrid.core.resolution import ResolutionPolicy

SF = Coordinate(37.6, -122.4)


@pytest.fixture
def planner():
    return RangeQueryPlanner(ResolutionPolicy())


def test_plan_has_fixed_size(planner):
    assert planner.plan_size == 1681
    for radius in (1, 50, 200, 5000):
        assert len(planner.plan(SF, radius, 100_000)) == 1681


def test_scenario_plan(planner):
    keys = planner.plan(SF, 50, 100_000)
    assert len(keys) == 1681
    assert all(k.time_bucket == 27 for k in keys)
    assert all(len(k.geohash) == 6 for k in keys)


def test_plan_contains_center_cell(planner):
    keys = planner.plan(SF, 50, 100_000)
    center = geocodec.encode_hex(SF, 6)
    assert keys[len(keys) // 2].geohash == center


@pytest.mark.parametrize("radius, width", [(1000, 4), (200, 5), (50, 6), (10, 7)])
def test_key_width_follows_radius(planner, radius, width):
    keys = planner.plan(SF, radius, 100_000)
    assert {len(k.geohash) for k in keys} == {width}


def test_plan_request(planner):
    request = QueryRequest(timestamp=7200, center=SF, radius=700)
    keys = planner.plan_request(request)
    assert keys == planner.plan(SF, 700, 7200)
    assert keys[0].time_bucket == 2


def test_single_cell_plan():
    planner = RangeQueryPlanner(ResolutionPolicy(), step_count=0)
    keys = planner.plan(SF, 50, 100_000)
    assert [k.geohash for k in keys] == [geocodec.encode_hex(SF, 6)]


def test_neighbour_order_is_latitude_major():
    planner = RangeQueryPlanner(ResolutionPolicy(), step_count=1)
    bits = 16
    lon_grid, lat_grid = geocodec.deinterleave(geocodec.encode(SF, bits), bits)

    expected = [
        geocodec.key_to_hex(geocodec.interleave(lon_grid + j, lat_grid + i, bits), 4)
        for i in (-1, 0, 1)
        for j in (-1, 0, 1)
    ]
    assert planner.neighbour_keys(SF, 4) == expected


def test_antimeridian_wraparound(planner):
    east = Coordinate(0.0, 179.9)
    west = Coordinate(0.0, -179.9)
    keys = {k.geohash for k in planner.plan(east, 1000, 100_000)}
    assert geocodec.encode_hex(west, 4) in keys


def test_duplicates_are_kept_at_coarse_tiers():
    # Tier 1 has only 4x4 cells, so a 41x41 square revisits them.
    planner = RangeQueryPlanner(ResolutionPolicy(thresholds=(), finest_tier=1))
    keys = planner.plan(SF, 1, 0)
    assert len(keys) == 1681
    assert len({k.geohash for k in keys}) == 16


def test_rejects_invalid_radius(planner):
    with pytest.raises(PreconditionError):
        planner.plan(SF, 0, 100_000)


def test_rejects_negative_step_count():
    with pytest.raises(ValueError):
        RangeQueryPlanner(ResolutionPolicy(), step_count=-1)
