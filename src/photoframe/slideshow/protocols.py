"""Storage contract consumed by the slideshow engine."""

from __future__ import annotations

from typing import Protocol

from .models import Device, ProcessedVariant, SlideshowQueue


class SlideshowStorage(Protocol):
    """Persistence the generator and queue service depend on.

    ``save_queue`` must replace the stored queue for a device in one write.
    """

    async def get_device(self, device_id: str) -> Device | None: ...

    async def list_processed_variants(self, bucket: str) -> list[ProcessedVariant]: ...

    async def load_queue(self, device_id: str) -> SlideshowQueue | None: ...

    async def save_queue(self, queue: SlideshowQueue) -> None: ...

    async def delete_queue(self, device_id: str) -> None: ...


__all__ = ["SlideshowStorage"]
