"""Queue interface (port) for indexed entries on their way to the store."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from skygrid.core.models import IndexedEntry


class EntryQueue(Protocol):
    """Port: accepts indexed entries and delivers them to consumers."""

    async def put(self, entry: IndexedEntry) -> None: ...

    async def get(self) -> IndexedEntry: ...

    def qsize(self) -> int: ...

    async def close(self) -> None: ...
