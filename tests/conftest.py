import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from photoframe.slideshow.models import (  # noqa: E402
    ColorPalette,
    Device,
    LayoutType,
    Orientation,
    ProcessedVariant,
    SlideshowQueue,
)


class InMemoryStorage:
    """Dict-backed stand-in for the SQLite repository."""

    def __init__(self) -> None:
        self.devices: dict[str, Device] = {}
        self.variants: dict[str, list[ProcessedVariant]] = {}
        self.queues: dict[str, SlideshowQueue] = {}
        self.saves = 0
        self.variant_lookups: list[str] = []

    async def get_device(self, device_id: str) -> Device | None:
        return self.devices.get(device_id)

    async def list_processed_variants(self, bucket: str) -> list[ProcessedVariant]:
        self.variant_lookups.append(bucket)
        return list(self.variants.get(bucket, []))

    async def load_queue(self, device_id: str) -> SlideshowQueue | None:
        stored = self.queues.get(device_id)
        if stored is None:
            return None
        # Hand out a copy so callers cannot mutate storage without saving.
        return SlideshowQueue.from_dict(stored.to_dict())

    async def save_queue(self, queue: SlideshowQueue) -> None:
        self.saves += 1
        self.queues[queue.device_id] = SlideshowQueue.from_dict(queue.to_dict())

    async def delete_queue(self, device_id: str) -> None:
        self.queues.pop(device_id, None)


def make_variant(
    image_id: str,
    width: int,
    height: int,
    colors: list[str] | None = None,
    layout_type: LayoutType = LayoutType.SINGLE,
) -> ProcessedVariant:
    suffix = "" if layout_type is LayoutType.SINGLE else f"-{layout_type.value}"
    return ProcessedVariant(
        image_id=image_id,
        variant_path=f"variants/{image_id}{suffix}.jpg",
        color_palette=ColorPalette.from_colors(colors or ["#808080", "#808080", "#808080"]),
        width=width,
        height=height,
        layout_type=layout_type,
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def portrait_device() -> Device:
    return Device(
        id="bedroom-clock",
        name="Bedroom Clock",
        width=300,
        height=400,
        orientation=Orientation.PORTRAIT,
    )


@pytest.fixture
def landscape_device() -> Device:
    return Device(
        id="kitchen-display",
        name="Kitchen Display",
        width=1024,
        height=600,
        orientation=Orientation.LANDSCAPE,
    )
