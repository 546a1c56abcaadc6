"""OpenSky live data scraper.

Downloads the /states/all snapshot every ``interval`` seconds and stores
each one as ``OpenSkyState<unix time>.json`` for skygrid-load. Runs until
interrupted. Please scrape responsibly.

Usage:
    skygrid-scrape --interval 120 --out-dir OpenSkyData
"""

from __future__ import annotations

import argparse
import asyncio
import time
from pathlib import Path

import httpx
import structlog

log = structlog.get_logger()


async def fetch_snapshot(client: httpx.AsyncClient, url: str, out_dir: Path) -> Path:
    """Download one snapshot and write it to ``out_dir``."""
    fetched_at = int(time.time())
    resp = await client.get(url)
    resp.raise_for_status()

    path = out_dir / f"OpenSkyState{fetched_at}.json"
    path.write_bytes(resp.content)
    log.info("snapshot_saved", path=str(path), size_bytes=len(resp.content))
    return path


async def run_scraper(
    url: str,
    out_dir: str | Path,
    interval_seconds: float,
    timeout_seconds: float = 30.0,
    max_fetches: int | None = None,
) -> int:
    """Fetch snapshots at a fixed rate. Returns the number saved.

    A failed fetch is logged and the next one still happens on schedule.
    """
    if interval_seconds <= 0:
        raise ValueError("interval must be > 0")
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    saved = fetches = 0
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        while max_fetches is None or fetches < max_fetches:
            started = time.monotonic()
            fetches += 1
            try:
                await fetch_snapshot(client, url, out_dir)
                saved += 1
            except (httpx.HTTPError, OSError) as e:
                log.warning("snapshot_failed", url=url, error=str(e))

            if max_fetches is not None and fetches >= max_fetches:
                break
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, interval_seconds - elapsed))
    return saved


def main() -> None:
    from skygrid.config import load_config
    from skygrid.main import close_logging, setup_logging

    config = load_config()
    parser = argparse.ArgumentParser(description="Periodically save OpenSky live snapshots")
    parser.add_argument("--interval", type=int, default=config.fetch.interval_seconds,
                        help="Seconds between fetches")
    parser.add_argument("--out-dir", default=config.fetch.out_dir, help="Output directory")
    parser.add_argument("--url", default=config.fetch.url, help="Snapshot URL")
    args = parser.parse_args()

    setup_logging(config)
    try:
        asyncio.run(run_scraper(args.url, args.out_dir, args.interval,
                                timeout_seconds=config.fetch.timeout_seconds))
    except KeyboardInterrupt:
        log.info("scraper_stopped")
    finally:
        close_logging()


if __name__ == "__main__":
    main()
