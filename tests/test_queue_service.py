import random

import anyio
import pytest

from photoframe.slideshow.errors import DeviceNotFoundError
from photoframe.slideshow.generator import QueueGenerator
from photoframe.slideshow.service import SlideshowQueueService

from conftest import InMemoryStorage, make_variant


class YieldingStorage(InMemoryStorage):
    """Storage that hands control back to the event loop on every access."""

    async def load_queue(self, device_id):
        await anyio.sleep(0)
        return await super().load_queue(device_id)

    async def save_queue(self, queue):
        await anyio.sleep(0)
        await super().save_queue(queue)


def build_service(storage, *, queue_size: int = 3, seed: int = 1) -> SlideshowQueueService:
    generator = QueueGenerator(storage, rng=random.Random(seed), queue_size=queue_size)
    return SlideshowQueueService(storage, generator)


@pytest.fixture
def landscape_storage(storage, landscape_device):
    storage.devices[landscape_device.id] = landscape_device
    storage.variants["medium-landscape"] = [
        make_variant("one", 1600, 900),
        make_variant("two", 1920, 1080),
        make_variant("three", 1200, 800),
    ]
    return storage


@pytest.mark.anyio
async def test_get_next_walks_queue_then_regenerates(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)

    served = [await service.get_next(landscape_device.id) for _ in range(3)]

    assert {item.image_id for item in served} == {"one", "two", "three"}
    stored = landscape_storage.queues[landscape_device.id]
    assert stored.current_index == 3
    assert stored.is_exhausted
    first_generated_at = stored.generated_at

    fourth = await service.get_next(landscape_device.id)

    regenerated = landscape_storage.queues[landscape_device.id]
    assert fourth is not None
    assert fourth.image_id == regenerated.queue[0].image_id
    assert regenerated.current_index == 1
    assert regenerated.generated_at >= first_generated_at
    assert len(landscape_storage.variant_lookups) == 2


@pytest.mark.anyio
async def test_get_next_serves_items_in_queue_order(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)

    queue = await service.get_or_create(landscape_device.id)
    expected = [item.image_id for item in queue.queue]

    served = [(await service.get_next(landscape_device.id)).image_id for _ in range(3)]

    assert served == expected


@pytest.mark.anyio
async def test_get_next_without_images_returns_none(storage, landscape_device) -> None:
    storage.devices[landscape_device.id] = landscape_device
    service = build_service(storage)

    assert await service.get_next(landscape_device.id) is None
    assert await service.get_next(landscape_device.id) is None

    stored = storage.queues[landscape_device.id]
    assert stored.queue == []
    assert stored.current_index == 0


@pytest.mark.anyio
async def test_get_next_for_unknown_device_raises(storage) -> None:
    service = build_service(storage)

    with pytest.raises(DeviceNotFoundError):
        await service.get_next("ghost")

    assert storage.queues == {}


@pytest.mark.anyio
async def test_regenerate_resets_cursor(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)
    await service.get_next(landscape_device.id)
    await service.get_next(landscape_device.id)
    assert landscape_storage.queues[landscape_device.id].current_index == 2

    queue = await service.regenerate(landscape_device.id)

    assert queue.current_index == 0
    assert len(queue.queue) == 3
    assert landscape_storage.queues[landscape_device.id].current_index == 0


@pytest.mark.anyio
async def test_peek_does_not_advance(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)

    assert await service.peek(landscape_device.id) is None

    await service.get_next(landscape_device.id)
    saves = landscape_storage.saves
    snapshot = await service.peek(landscape_device.id)
    again = await service.peek(landscape_device.id)

    assert snapshot is not None and again is not None
    assert snapshot.current_index == again.current_index == 1
    assert landscape_storage.saves == saves


@pytest.mark.anyio
async def test_get_or_create_keeps_existing_queue(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)

    created = await service.get_or_create(landscape_device.id)
    await service.get_next(landscape_device.id)
    existing = await service.get_or_create(landscape_device.id)

    assert [item.image_id for item in existing.queue] == [item.image_id for item in created.queue]
    assert existing.current_index == 1
    assert len(landscape_storage.variant_lookups) == 1


@pytest.mark.anyio
async def test_reset_forces_fresh_queue(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)
    await service.get_next(landscape_device.id)

    await service.reset(landscape_device.id)

    assert await service.peek(landscape_device.id) is None
    await service.get_next(landscape_device.id)
    assert landscape_storage.queues[landscape_device.id].current_index == 1


@pytest.mark.anyio
async def test_concurrent_requests_do_not_repeat_items(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)
    served: list[str] = []

    async def pull() -> None:
        item = await service.get_next(landscape_device.id)
        assert item is not None
        served.append(item.image_id)

    async with anyio.create_task_group() as tg:
        for _ in range(3):
            tg.start_soon(pull)

    assert sorted(served) == ["one", "three", "two"]
    assert landscape_storage.queues[landscape_device.id].current_index == 3


@pytest.mark.anyio
async def test_contended_lock_serves_each_item_once(landscape_device) -> None:
    storage = YieldingStorage()
    storage.devices[landscape_device.id] = landscape_device
    storage.variants["medium-landscape"] = [
        make_variant(f"img-{i}", 1600, 900) for i in range(6)
    ]
    service = build_service(storage, queue_size=6)
    served: list[str] = []

    async def pull() -> None:
        item = await service.get_next(landscape_device.id)
        assert item is not None
        served.append(item.image_id)

    async with anyio.create_task_group() as tg:
        for _ in range(6):
            tg.start_soon(pull)

    assert sorted(served) == sorted(f"img-{i}" for i in range(6))
    assert storage.queues[landscape_device.id].current_index == 6
    assert service._locks == {}


@pytest.mark.anyio
async def test_device_locks_are_released_after_use(landscape_storage, landscape_device) -> None:
    service = build_service(landscape_storage)

    for i in range(50):
        with pytest.raises(DeviceNotFoundError):
            await service.get_next(f"ghost-{i}")
    await service.get_next(landscape_device.id)
    await service.regenerate(landscape_device.id)
    await service.get_or_create(landscape_device.id)
    await service.reset(landscape_device.id)

    assert service._locks == {}
    assert service._lock_users == {}
