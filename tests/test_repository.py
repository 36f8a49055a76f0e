from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from photoframe.repository import DEFAULT_DEVICES, SlideshowRepository
from photoframe.slideshow.models import (
    ColorPalette,
    Device,
    LayoutSlot,
    LayoutType,
    Orientation,
    QueueItem,
    SlideshowQueue,
)


@pytest.fixture
async def repository(tmp_path):
    repo = SlideshowRepository(tmp_path / "slideshow.db")
    await repo.initialize()
    try:
        yield repo
    finally:
        await repo.close()


def _frame(**overrides) -> Device:
    values = dict(
        id="hallway-frame",
        name="Hallway Frame",
        width=800,
        height=480,
        orientation=Orientation.LANDSCAPE,
    )
    values.update(overrides)
    return Device(**values)


@pytest.mark.anyio
async def test_device_roundtrip_with_layouts(repository):
    slots = [
        LayoutSlot(type=LayoutType.SINGLE, width=800, height=480, min_aspect_ratio=1.0),
        LayoutSlot(
            type=LayoutType.PAIR_VERTICAL,
            width=396,
            height=480,
            divider=8,
            preferred_orientations=frozenset({Orientation.PORTRAIT}),
            max_aspect_ratio=0.95,
        ),
    ]

    stored = await repository.upsert_device(_frame(layout_slots=slots))

    assert stored.layout_slots == slots
    assert stored.created_at is not None
    assert stored.created_at.tzinfo is not None
    assert stored.last_seen is not None
    assert await repository.get_device("hallway-frame") == stored


@pytest.mark.anyio
async def test_upsert_updates_existing_device(repository):
    first = await repository.upsert_device(_frame())

    updated = await repository.upsert_device(_frame(name="Renamed", width=1024, height=600))

    assert updated.name == "Renamed"
    assert (updated.width, updated.height) == (1024, 600)
    assert updated.created_at == first.created_at
    assert [device.id for device in await repository.list_devices()] == ["hallway-frame"]


@pytest.mark.anyio
async def test_missing_device_returns_none(repository):
    assert await repository.get_device("nope") is None
    assert await repository.delete_device("nope") is False


@pytest.mark.anyio
async def test_delete_device_drops_queue(repository):
    await repository.upsert_device(_frame())
    await repository.save_queue(SlideshowQueue(device_id="hallway-frame", queue=[]))

    assert await repository.delete_device("hallway-frame") is True
    assert await repository.get_device("hallway-frame") is None
    assert await repository.load_queue("hallway-frame") is None


@pytest.mark.anyio
async def test_seed_default_devices_only_once(repository):
    assert await repository.seed_default_devices() == len(DEFAULT_DEVICES)
    assert await repository.seed_default_devices() == 0

    devices = await repository.list_devices()
    assert [device.id for device in devices] == sorted(device.id for device in DEFAULT_DEVICES)


@pytest.mark.anyio
async def test_seed_skips_when_devices_exist(repository):
    await repository.upsert_device(_frame())

    assert await repository.seed_default_devices() == 0
    assert len(await repository.list_devices()) == 1


@pytest.mark.anyio
async def test_variants_are_listed_per_bucket(repository):
    await repository.add_variant(
        image_id="b",
        bucket="medium-landscape",
        variant_path="medium-landscape/b.jpg",
        width=600,
        height=800,
        colors=["#FF0000", "#00FF00", "#0000FF", "#FFFFFF"],
        color_source="#FF0000",
    )
    await repository.add_variant(
        image_id="a",
        bucket="medium-landscape",
        variant_path="medium-landscape/a.jpg",
        width=1600,
        height=900,
    )
    await repository.add_variant(
        image_id="a",
        bucket="small-portrait",
        variant_path="small-portrait/a.jpg",
        width=1600,
        height=900,
    )

    variants = await repository.list_processed_variants("medium-landscape")

    assert [variant.image_id for variant in variants] == ["a", "b"]
    assert variants[0].color_palette == ColorPalette()
    palette = variants[1].color_palette
    assert (palette.primary, palette.secondary, palette.tertiary) == (
        "#FF0000",
        "#00FF00",
        "#0000FF",
    )
    assert palette.all_colors == ("#FF0000", "#00FF00", "#0000FF", "#FFFFFF")
    assert await repository.list_processed_variants("large-portrait") == []


@pytest.mark.anyio
async def test_rerendered_variant_replaces_previous(repository):
    for path in ("old.jpg", "new.jpg"):
        await repository.add_variant(
            image_id="a",
            bucket="small-portrait",
            variant_path=path,
            width=600,
            height=800,
        )

    (variant,) = await repository.list_processed_variants("small-portrait")

    assert variant.variant_path == "new.jpg"


@pytest.mark.anyio
async def test_malformed_palette_falls_back_to_black(repository):
    await repository.add_variant(
        image_id="a",
        bucket="small-portrait",
        variant_path="a.jpg",
        width=600,
        height=800,
    )
    assert repository._connection is not None
    await repository._connection.execute(
        "UPDATE device_variants SET color_palette = ? WHERE image_id = ?",
        ("{not json", "a"),
    )
    await repository._connection.commit()

    (variant,) = await repository.list_processed_variants("small-portrait")

    assert variant.color_palette.primary == "#000000"


@pytest.mark.anyio
async def test_queue_roundtrip(repository):
    palette = ColorPalette.from_colors(["#112233", "#445566", "#778899"])
    queue = SlideshowQueue(
        device_id="bedroom-clock",
        queue=[
            QueueItem(
                image_id="a",
                variant_path="a.jpg",
                color_palette=palette,
                is_paired=True,
                paired_with="b",
                paired_variant_path="b.jpg",
                crop_percentage=12.5,
            ),
            QueueItem(
                image_id="b",
                variant_path="b.jpg",
                color_palette=palette,
                is_paired=True,
                paired_with="a",
                paired_variant_path="a.jpg",
                layout_type=LayoutType.PAIR_VERTICAL,
            ),
        ],
        current_index=1,
        generated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )

    await repository.save_queue(queue)
    loaded = await repository.load_queue("bedroom-clock")

    assert loaded == queue


@pytest.mark.anyio
async def test_save_queue_replaces_previous_state(repository):
    first = SlideshowQueue(
        device_id="bedroom-clock",
        queue=[QueueItem(image_id="a", variant_path="a.jpg", color_palette=ColorPalette())],
        current_index=1,
    )
    second = SlideshowQueue(device_id="bedroom-clock", queue=[], current_index=0)

    await repository.save_queue(first)
    await repository.save_queue(second)

    loaded = await repository.load_queue("bedroom-clock")
    assert loaded is not None
    assert loaded.queue == []
    assert loaded.current_index == 0


@pytest.mark.anyio
async def test_load_queue_clamps_out_of_range_cursor(repository):
    item = QueueItem(image_id="a", variant_path="a.jpg", color_palette=ColorPalette())
    await repository.save_queue(
        SlideshowQueue(device_id="bedroom-clock", queue=[item], current_index=0)
    )
    assert repository._connection is not None
    await repository._connection.execute(
        "UPDATE device_queue_state SET current_index = 7, queue_data = ? WHERE device_id = ?",
        (json.dumps([item.to_dict()]), "bedroom-clock"),
    )
    await repository._connection.commit()

    loaded = await repository.load_queue("bedroom-clock")

    assert loaded is not None
    assert loaded.current_index == 1
    assert loaded.is_exhausted


@pytest.mark.anyio
async def test_delete_queue(repository):
    await repository.save_queue(SlideshowQueue(device_id="bedroom-clock", queue=[]))

    await repository.delete_queue("bedroom-clock")

    assert await repository.load_queue("bedroom-clock") is None


@pytest.mark.anyio
async def test_variants_for_each_layout_type_coexist(repository):
    for layout_type in (LayoutType.SINGLE, LayoutType.PAIR_VERTICAL):
        await repository.add_variant(
            image_id="a",
            bucket="small-portrait",
            variant_path=f"a-{layout_type.value}.jpg",
            width=600,
            height=800,
            layout_type=layout_type,
        )

    variants = await repository.list_processed_variants("small-portrait")

    assert [(v.layout_type, v.variant_path) for v in variants] == [
        (LayoutType.PAIR_VERTICAL, "a-pair-vertical.jpg"),
        (LayoutType.SINGLE, "a-single.jpg"),
    ]
