#!/usr/bin/env python3
"""SkyGrid telemetry simulator.

Generates aircraft position reports in the OpenSky CSV format, posts them to
the server, then runs a radius query around the center.

Usage:
    # 20 aircraft around San Francisco for 2 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --aircraft 20 --duration 120

    # Stress test: 200 aircraft, one report every 2 seconds
    python -m tools.simulator.simulate --aircraft 200 --report-interval 2

    # Specific location and query radius
    python -m tools.simulator.simulate --center 48.8566,2.3522 --query-radius 100
"""

from __future__ import annotations

import argparse
import asyncio
import math
import random
import string
import time
from dataclasses import dataclass

import httpx

CSV_HEADER = ("time,icao24,lat,lon,velocity,heading,vertrate,callsign,onground,"
              "alert,spi,squawk,baroaltitude,geoaltitude,lastposupdate,lastcontact")


@dataclass
class SimAircraft:
    icao24: str
    callsign: str
    lat: float
    lon: float
    heading: float
    speed_mps: float
    altitude_m: float
    vertical_rate: float = 0.0
    reports_sent: int = 0
    reports_indexed: int = 0
    errors: int = 0


def random_icao24() -> str:
    return "".join(random.choices("0123456789abcdef", k=6))


def random_callsign() -> str:
    return "".join(random.choices(string.ascii_uppercase, k=3)) + str(random.randint(100, 9999))


def move_aircraft(aircraft: SimAircraft, dt_seconds: float) -> None:
    """Move an aircraft along its heading, with gentle turns and climbs."""
    aircraft.heading = (aircraft.heading + random.uniform(-3, 3)) % 360
    aircraft.speed_mps = max(60.0, min(260.0, aircraft.speed_mps + random.uniform(-2, 2)))
    aircraft.vertical_rate = max(-15.0, min(15.0, aircraft.vertical_rate + random.uniform(-1, 1)))
    aircraft.altitude_m = max(300.0, aircraft.altitude_m + aircraft.vertical_rate * dt_seconds)

    distance_m = aircraft.speed_mps * dt_seconds
    heading_rad = math.radians(aircraft.heading)

    # Approximate: 1 degree latitude = 111,000 m
    dlat = (distance_m * math.cos(heading_rad)) / 111_000
    dlon = (distance_m * math.sin(heading_rad)) / (111_000 * math.cos(math.radians(aircraft.lat)))

    aircraft.lat = max(-89.9, min(89.9, aircraft.lat + dlat))
    aircraft.lon = (aircraft.lon + dlon + 180.0) % 360.0 - 180.0


def make_csv_row(aircraft: SimAircraft, now: int, stale: bool) -> str:
    """One CSV row. ``stale`` rows carry an old position and should be dropped."""
    last_pos = now - random.randint(20, 60) if stale else now - random.randint(0, 5)
    return ",".join([
        str(now),
        aircraft.icao24,
        f"{aircraft.lat:.6f}",
        f"{aircraft.lon:.6f}",
        f"{aircraft.speed_mps:.1f}",
        f"{aircraft.heading:.1f}",
        f"{aircraft.vertical_rate:.2f}",
        aircraft.callsign,
        "false",
        "false",
        "false",
        str(random.randint(1000, 7777)),
        f"{aircraft.altitude_m:.1f}",
        f"{aircraft.altitude_m + random.uniform(-30, 30):.1f}",
        f"{last_pos}",
        f"{now}",
    ])


async def run_aircraft(
    client: httpx.AsyncClient,
    aircraft: SimAircraft,
    server_url: str,
    report_interval: float,
    duration_seconds: float,
    stale_ratio: float,
) -> None:
    """Simulate a single aircraft sending one report per interval."""
    end_time = time.monotonic() + duration_seconds

    while time.monotonic() < end_time:
        move_aircraft(aircraft, report_interval)
        now = int(time.time())
        body = CSV_HEADER + "\n" + make_csv_row(aircraft, now, random.random() < stale_ratio)

        try:
            resp = await client.post(
                f"{server_url}/api/v1/records",
                content=body,
                headers={"content-type": "text/csv"},
            )
            if resp.status_code == 200:
                aircraft.reports_sent += 1
                aircraft.reports_indexed += resp.json()["indexed"]
            else:
                aircraft.errors += 1
        except httpx.RequestError:
            aircraft.errors += 1

        await asyncio.sleep(report_interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lon = args.center
    fleet = []
    for _ in range(args.aircraft):
        # Scatter aircraft within radius of center
        angle = random.uniform(0, 2 * math.pi)
        dist_km = random.uniform(0, args.radius_km)
        lat = center_lat + (dist_km / 111.0) * math.cos(angle)
        lon = center_lon + (dist_km / (111.0 * math.cos(math.radians(center_lat)))) * math.sin(angle)

        fleet.append(SimAircraft(
            icao24=random_icao24(),
            callsign=random_callsign(),
            lat=lat,
            lon=lon,
            heading=random.uniform(0, 360),
            speed_mps=random.uniform(120, 240),
            altitude_m=random.uniform(2000, 11000),
        ))

    print(f"Starting simulation: {args.aircraft} aircraft, one report every {args.report_interval}s")
    print(f"  Center: {center_lat:.4f}, {center_lon:.4f}")
    print(f"  Radius: {args.radius_km} km")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print(f"  Stale ratio: {args.stale_ratio}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_aircraft(client, ac, args.server, args.report_interval,
                         args.duration, args.stale_ratio)
            for ac in fleet
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_sent = sum(a.reports_sent for a in fleet)
        total_indexed = sum(a.reports_indexed for a in fleet)
        total_errors = sum(a.errors for a in fleet)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Reports sent: {total_sent}")
        print(f"  Reports indexed: {total_indexed}")
        print(f"  Errors: {total_errors}")
        print(f"  Throughput: {total_sent / elapsed:.1f} reports/sec")

        try:
            resp = await client.get(f"{args.server}/api/v1/points", params={
                "timestamp": int(time.time()),
                "latitude": center_lat,
                "longitude": center_lon,
                "radius": args.query_radius,
            })
            if resp.status_code == 200:
                data = resp.json()
                print(f"\nQuery radius {args.query_radius}:")
                print(f"  Tier: {data['tier']}")
                print(f"  Cells: {data['cells']}")
                print(f"  Points: {len(data['points'])}")
            else:
                print(f"\nQuery failed: HTTP {resp.status_code}")

            resp = await client.get(f"{args.server}/api/v1/stats")
            if resp.status_code == 200:
                stats = resp.json()
                print("\nServer stats:")
                print(f"  Records received: {stats['records_received']}")
                print(f"  Records indexed: {stats['records_indexed']}")
                print(f"  Records dropped: {stats['records_dropped']}")
                print(f"  Entries stored: {stats['entries_stored']}")
                print(f"  Active aircraft: {stats['active_aircraft']['total']}")
                print(f"  Queue depth: {stats['queue_depth']}")
        except httpx.RequestError as e:
            print(f"\nCould not reach server: {e}")


def main():
    parser = argparse.ArgumentParser(description="SkyGrid telemetry simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--aircraft", type=int, default=20, help="Number of simulated aircraft")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--report-interval", type=float, default=5.0,
                        help="Seconds between reports per aircraft")
    parser.add_argument("--center", type=str, default="37.6,-122.4",
                        help="Center lat,lon (default: San Francisco)")
    parser.add_argument("--radius-km", type=float, default=150.0, help="Scatter radius in km")
    parser.add_argument("--query-radius", type=float, default=200.0,
                        help="Radius used for the final query")
    parser.add_argument("--stale-ratio", type=float, default=0.05,
                        help="Fraction of reports sent with a stale position")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
