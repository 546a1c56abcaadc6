"""File-based storage implementation.

Stores entries as JSON Lines, one file per partition key:

    base_dir/<time_bucket>/<geohash>.jsonl

Writes append; reads collapse rows by (flight, time), so storing the same
entry twice is an idempotent overwrite from the reader's point of view.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from skygrid.core.models import IndexedEntry

log = structlog.get_logger()

_GEOHASH_RE = re.compile(r"^[0-9a-f]+$")


class FileEntryStore:
    """EntryStore backed by hour-bucket partitioned files on disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _partition_path(self, time_bucket: int, geohash: str) -> Path:
        """Return the file for a partition key."""
        if not _GEOHASH_RE.match(geohash):
            raise ValueError(f"invalid geohash {geohash!r}")
        return self._base_dir / str(int(time_bucket)) / f"{geohash}.jsonl"

    async def store(self, entry: IndexedEntry) -> None:
        """Append a single entry to its partition file."""
        path = self._partition_path(entry.time_bucket, entry.geohash)
        path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_message(), separators=(",", ":"))
        with open(path, "a") as f:
            f.write(line + "\n")

        log.debug("entry_written", flight=entry.flight, path=str(path))

    async def store_batch(self, entries: list[IndexedEntry]) -> None:
        """Store a batch of entries."""
        for entry in entries:
            await self.store(entry)

    async def lookup(self, time_bucket: int, geohash: str) -> list[dict]:
        """Return the rows of one partition, an empty list if it has none."""
        path = self._partition_path(time_bucket, geohash)
        if not path.exists():
            return []

        rows: dict[tuple[str, int], dict] = {}
        with open(path) as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    log.warning("corrupt_row_skipped", path=str(path))
                    continue
                rows[(row["flight"], row["time"])] = row
        return list(rows.values())
