"""Slideshow domain package: layout decisions, pairing and queue rotation."""

from .errors import DeviceNotFoundError, InvalidGeometryError, SlideshowError
from .generator import DEFAULT_QUEUE_SIZE, QueueGenerator
from .models import (
    AspectRatio,
    ColorPalette,
    Device,
    LayoutEvaluation,
    LayoutSlot,
    LayoutType,
    Orientation,
    ProcessedVariant,
    QueueItem,
    SlideshowQueue,
)
from .protocols import SlideshowStorage
from .service import SlideshowQueueService

__all__ = [
    "AspectRatio",
    "ColorPalette",
    "DEFAULT_QUEUE_SIZE",
    "Device",
    "DeviceNotFoundError",
    "InvalidGeometryError",
    "LayoutEvaluation",
    "LayoutSlot",
    "LayoutType",
    "Orientation",
    "ProcessedVariant",
    "QueueGenerator",
    "QueueItem",
    "SlideshowError",
    "SlideshowQueue",
    "SlideshowQueueService",
    "SlideshowStorage",
]
