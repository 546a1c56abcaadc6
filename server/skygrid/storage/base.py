"""Storage interface (port) for indexed entries."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from skygrid.core.models import IndexedEntry


class EntryStore(Protocol):
    """Port: persists entries under (time_bucket, geohash) and reads them back."""

    async def store(self, entry: IndexedEntry) -> None: ...

    async def store_batch(self, entries: list[IndexedEntry]) -> None: ...

    async def lookup(self, time_bucket: int, geohash: str) -> list[dict]: ...
