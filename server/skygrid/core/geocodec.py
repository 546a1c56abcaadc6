"""Bit-interleaving geohash codec.

Keys are built by alternately bisecting the longitude range [-180, 180] and
the latitude range [-90, 90], longitude first, most significant bit first.
A coordinate strictly below the midpoint yields a 0 bit and keeps the lower
half; otherwise a 1 bit and the upper half.

This is the only place keys are computed. Both the index writer and the
query planner use it, so the partition keys they produce always agree.
"""

from __future__ import annotations

from skygrid.core.errors import PreconditionError
from skygrid.core.models import MAX_LAT, MAX_LON, MIN_LAT, MIN_LON, Coordinate


def _check_bits(bits: int) -> None:
    if isinstance(bits, bool) or not isinstance(bits, int):
        raise PreconditionError(f"bit count must be an int, got {bits!r}")
    if bits < 0:
        raise PreconditionError(f"bit count must be >= 0, got {bits}")


def encode(coordinate: Coordinate, bits: int) -> int:
    """Encode a coordinate into a key of exactly ``bits`` significant bits."""
    _check_bits(bits)
    min_lat, max_lat = MIN_LAT, MAX_LAT
    min_lon, max_lon = MIN_LON, MAX_LON
    result = 0
    for i in range(bits):
        if i % 2 == 0:
            mid = (min_lon + max_lon) / 2
            if coordinate.lon < mid:
                result <<= 1
                max_lon = mid
            else:
                result = result << 1 | 1
                min_lon = mid
        else:
            mid = (min_lat + max_lat) / 2
            if coordinate.lat < mid:
                result <<= 1
                max_lat = mid
            else:
                result = result << 1 | 1
                min_lat = mid
    return result


def key_to_hex(key: int, hex_digits: int) -> str:
    """Render a key as exactly ``hex_digits`` lowercase hex digits."""
    if hex_digits == 0:
        return ""
    return format(key, f"0{hex_digits}x")


def encode_hex(coordinate: Coordinate, hex_digits: int) -> str:
    """Encode to a fixed-width hex string. Leading zeros are significant."""
    _check_bits(hex_digits)
    return key_to_hex(encode(coordinate, 4 * hex_digits), hex_digits)


def to_bit_string(key: int, bits: int) -> str:
    """Key as a '0'/'1' string left-padded to ``bits`` characters."""
    _check_bits(bits)
    if bits == 0:
        return ""
    return format(key, f"0{bits}b")


def deinterleave(key: int, bits: int) -> tuple[int, int]:
    """Split a key into (lon_grid, lat_grid).

    Even bit positions (counting from the most significant) belong to the
    longitude axis, odd positions to the latitude axis.
    """
    _check_bits(bits)
    lon_grid = lat_grid = 0
    for i in range(bits):
        bit = (key >> (bits - 1 - i)) & 1
        if i % 2 == 0:
            lon_grid = lon_grid << 1 | bit
        else:
            lat_grid = lat_grid << 1 | bit
    return lon_grid, lat_grid


def interleave(lon_grid: int, lat_grid: int, bits: int) -> int:
    """Inverse of :func:`deinterleave`."""
    _check_bits(bits)
    lon_bits = (bits + 1) // 2
    lat_bits = bits // 2
    if not 0 <= lon_grid < (1 << lon_bits) or not 0 <= lat_grid < (1 << lat_bits):
        raise PreconditionError(
            f"grid coordinates ({lon_grid}, {lat_grid}) do not fit in {bits} bits"
        )
    key = 0
    for i in range(bits):
        if i % 2 == 0:
            lon_bits -= 1
            key = key << 1 | ((lon_grid >> lon_bits) & 1)
        else:
            lat_bits -= 1
            key = key << 1 | ((lat_grid >> lat_bits) & 1)
    return key
