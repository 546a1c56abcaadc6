"""In-process asyncio queue implementation of EntryQueue."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skygrid.core.models import IndexedEntry


class AsyncioEntryQueue:
    """EntryQueue backed by asyncio.Queue. Zero dependencies."""

    def __init__(self, max_size: int = 10_000) -> None:
        self._queue: asyncio.Queue[IndexedEntry] = asyncio.Queue(maxsize=max_size)

    async def put(self, entry: IndexedEntry) -> None:
        await self._queue.put(entry)

    async def get(self) -> IndexedEntry:
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def close(self) -> None:
        pass
