"""Persisted slideshow rotation per device."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .generator import QueueGenerator
from .models import QueueItem, SlideshowQueue
from .protocols import SlideshowStorage

logger = logging.getLogger(__name__)


class SlideshowQueueService:
    """Serve queue items in order and regenerate the queue when it runs out.

    Read-modify-write of a device's queue is serialised per device within
    this process. Separate processes rely on the storage replacing a queue
    in a single write; a race there can serve one item twice.
    """

    def __init__(self, storage: SlideshowStorage, generator: QueueGenerator) -> None:
        self._storage = storage
        self._generator = generator
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _device_lock(self, device_id: str) -> AsyncIterator[None]:
        """Hold the device's lock; the entry is dropped once nobody uses it."""

        lock = self._locks.get(device_id)
        if lock is None:
            lock = self._locks[device_id] = asyncio.Lock()
        self._lock_users[device_id] = self._lock_users.get(device_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[device_id] -= 1
            if not self._lock_users[device_id]:
                del self._lock_users[device_id]
                del self._locks[device_id]

    async def get_next(self, device_id: str) -> QueueItem | None:
        """Return the item at the cursor and advance it.

        Not idempotent; use :meth:`peek` to inspect the queue without
        consuming an item.
        """

        async with self._device_lock(device_id):
            queue = await self._storage.load_queue(device_id)

            if queue is None:
                queue = await self._generator.generate(device_id)
                await self._storage.save_queue(queue)
            elif queue.is_exhausted:
                logger.info(
                    "Slideshow queue for %s exhausted after %d items; regenerating",
                    device_id,
                    len(queue.queue),
                )
                queue = await self._generator.generate(device_id)
                await self._storage.save_queue(queue)

            if queue.is_exhausted:
                return None

            item = queue.queue[queue.current_index]
            queue.current_index += 1
            await self._storage.save_queue(queue)
            return item

    async def regenerate(self, device_id: str) -> SlideshowQueue:
        """Replace the device's queue with a fresh one, cursor reset to zero."""

        async with self._device_lock(device_id):
            queue = await self._generator.generate(device_id)
            await self._storage.save_queue(queue)
            logger.info("Regenerated slideshow queue for %s on request", device_id)
            return queue

    async def get_or_create(self, device_id: str) -> SlideshowQueue:
        """Return the persisted queue, generating and saving one if absent."""

        async with self._device_lock(device_id):
            queue = await self._storage.load_queue(device_id)
            if queue is None:
                queue = await self._generator.generate(device_id)
                await self._storage.save_queue(queue)
            return queue

    async def peek(self, device_id: str) -> SlideshowQueue | None:
        return await self._storage.load_queue(device_id)

    async def reset(self, device_id: str) -> None:
        async with self._device_lock(device_id):
            await self._storage.delete_queue(device_id)


__all__ = ["SlideshowQueueService"]
