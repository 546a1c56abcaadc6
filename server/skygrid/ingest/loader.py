"""Load an OpenSky CSV or JSON file and index it.

Usage:
    skygrid-load data/states_2017-06-05-00.csv
    skygrid-load OpenSkyData/OpenSkyState1496620800.json --config config.yaml

With the asyncio queue backend the entries are written straight to the
configured store; with the kafka backend they are published to the topic
and stored by whichever server consumes it.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from skygrid.core.models import IngestResult, TelemetryRecord
from skygrid.ingest.parser import parse_csv, parse_live_json

log = structlog.get_logger()


def load_file(path: str | Path) -> list[TelemetryRecord]:
    """Parse a .csv or .json telemetry file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"no file found at {str(path)!r} or path is a directory")

    if path.suffix == ".csv":
        with open(path, encoding="utf-8") as f:
            return parse_csv(f)
    if path.suffix == ".json":
        return parse_live_json(path.read_text(encoding="utf-8"))
    raise ValueError("only .csv and .json files are accepted")


def chunk_size(queue_max_size: int, tier_count: int, record_count: int) -> int:
    """Records per chunk such that one chunk's entries fit in the queue.

    A queue size of 0 or less means unbounded.
    """
    if queue_max_size <= 0:
        return max(1, record_count)
    return max(1, queue_max_size // tier_count)


async def index_file(path: str | Path, config_path: str | None = None) -> IngestResult:
    """Index a file chunk by chunk, draining the queue into the store in between.

    No storage consumer runs in the CLI, so a chunk must fit in the queue.
    """
    from skygrid.config import load_config
    from skygrid.main import build_components, close_logging, setup_logging

    config = load_config(config_path)
    setup_logging(config)

    try:
        records = load_file(path)
        log.info("file_loaded", path=str(path), records=len(records))

        components = build_components(config)
        size = chunk_size(config.queue.max_size, len(components.writer.tiers), len(records))
        result = IngestResult()
        stored = 0
        try:
            for start in range(0, len(records), size):
                chunk = records[start:start + size]
                result = result.merge(await components.processor.process_batch(chunk))
                stored += await components.processor.drain()
        finally:
            await components.queue.close()

        log.info("file_indexed", path=str(path), indexed=result.indexed,
                 dropped=result.dropped, rejected=result.rejected, failed=result.failed,
                 entries=result.entries, stored=stored, chunk_size=size)
        return result
    finally:
        close_logging()


def main() -> None:
    parser = argparse.ArgumentParser(description="Index an OpenSky telemetry file")
    parser.add_argument("path", help="Path to a .csv or .json file")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    args = parser.parse_args()

    try:
        result = asyncio.run(index_file(args.path, args.config))
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"{result.indexed}/{result.received} records indexed "
          f"({result.entries} entries, {result.dropped} dropped, {result.rejected} rejected, "
          f"{result.failed} failed)")


if __name__ == "__main__":
    main()
