"""Domain models for device layouts and slideshow queues."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

_BLACK = "#000000"


class Orientation(str, Enum):
    """Geometric orientation of an image or device."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    SQUARE = "square"


class LayoutType(str, Enum):
    """Display region kinds a device can declare."""

    SINGLE = "single"
    PAIR_VERTICAL = "pair-vertical"
    PAIR_HORIZONTAL = "pair-horizontal"

    @property
    def is_paired(self) -> bool:
        return self is not LayoutType.SINGLE


@dataclass(slots=True, frozen=True)
class AspectRatio:
    """Aspect ratio and orientation derived from pixel dimensions."""

    width: int
    height: int
    ratio: float
    orientation: Orientation


def _optional_float(data: dict[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return float(value)
    return None


@dataclass(slots=True, frozen=True)
class LayoutSlot:
    """A device-declared display region.

    ``width`` and ``height`` describe the area a single image is fitted into:
    the whole frame for ``single`` slots, one pane for paired slots.
    """

    type: LayoutType
    width: int
    height: int
    divider: Optional[int] = None
    preferred_orientations: Optional[frozenset[Orientation]] = None
    min_aspect_ratio: Optional[float] = None
    max_aspect_ratio: Optional[float] = None

    @property
    def pane_count(self) -> int:
        if self.type is LayoutType.SINGLE:
            return 1
        if self.type in (LayoutType.PAIR_VERTICAL, LayoutType.PAIR_HORIZONTAL):
            return 2
        raise ValueError(f"Unknown layout type: {self.type!r}")

    @property
    def composite_size(self) -> tuple[int, int]:
        """Return the full frame size covered by every pane plus the divider."""

        divider = self.divider or 0
        if self.type is LayoutType.SINGLE:
            return self.width, self.height
        if self.type is LayoutType.PAIR_VERTICAL:
            return self.width * 2 + divider, self.height
        if self.type is LayoutType.PAIR_HORIZONTAL:
            return self.width, self.height * 2 + divider
        raise ValueError(f"Unknown layout type: {self.type!r}")

    def accepts_ratio(self, ratio: float) -> bool:
        if self.min_aspect_ratio is not None and ratio < self.min_aspect_ratio:
            return False
        if self.max_aspect_ratio is not None and ratio > self.max_aspect_ratio:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "width": self.width,
            "height": self.height,
            "divider": self.divider,
            "preferred_orientations": (
                sorted(o.value for o in self.preferred_orientations)
                if self.preferred_orientations is not None
                else None
            ),
            "min_aspect_ratio": self.min_aspect_ratio,
            "max_aspect_ratio": self.max_aspect_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LayoutSlot":
        """Parse a slot from stored JSON (snake_case or camelCase keys)."""

        preferred = data.get("preferred_orientations", data.get("preferredOrientations"))
        divider = data.get("divider")
        return cls(
            type=LayoutType(data["type"]),
            width=int(data["width"]),
            height=int(data["height"]),
            divider=int(divider) if divider is not None else None,
            preferred_orientations=(
                frozenset(Orientation(value) for value in preferred)
                if preferred is not None
                else None
            ),
            min_aspect_ratio=_optional_float(data, "min_aspect_ratio", "minAspectRatio"),
            max_aspect_ratio=_optional_float(data, "max_aspect_ratio", "maxAspectRatio"),
        )


@dataclass(slots=True, frozen=True)
class LayoutEvaluation:
    """How well an image fits one layout slot."""

    layout_type: LayoutType
    width: int
    height: int
    crop_percentage: float
    is_preferred: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "layout_type": self.layout_type.value,
            "width": self.width,
            "height": self.height,
            "crop_percentage": self.crop_percentage,
            "is_preferred": self.is_preferred,
        }


@dataclass(slots=True, frozen=True)
class ColorPalette:
    """Ordered colour palette attached to a processed image."""

    primary: str = _BLACK
    secondary: str = _BLACK
    tertiary: str = _BLACK
    source_color: str = _BLACK
    all_colors: tuple[str, ...] = ()

    @classmethod
    def from_colors(
        cls, colors: list[str] | tuple[str, ...], source_color: str | None = None
    ) -> "ColorPalette":
        """Build a palette from an extractor's ordered hex list."""

        colors = tuple(colors)
        primary = colors[0] if colors else _BLACK
        return cls(
            primary=primary,
            secondary=colors[1] if len(colors) > 1 else _BLACK,
            tertiary=colors[2] if len(colors) > 2 else _BLACK,
            source_color=source_color or primary,
            all_colors=colors,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "tertiary": self.tertiary,
            "source_color": self.source_color,
            "all_colors": list(self.all_colors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ColorPalette":
        return cls(
            primary=data.get("primary") or _BLACK,
            secondary=data.get("secondary") or _BLACK,
            tertiary=data.get("tertiary") or _BLACK,
            source_color=data.get("source_color") or data.get("sourceColor") or _BLACK,
            all_colors=tuple(data.get("all_colors") or data.get("allColors") or ()),
        )


@dataclass(slots=True)
class ProcessedVariant:
    """A pre-rendered variant of a source image for one size bucket.

    ``width`` and ``height`` are the source image dimensions.
    """

    image_id: str
    variant_path: str
    color_palette: ColorPalette
    width: int
    height: int
    layout_type: LayoutType = LayoutType.SINGLE


@dataclass(slots=True)
class Device:
    """A registered photo frame."""

    id: str
    name: str
    width: int
    height: int
    orientation: Orientation
    layout_slots: list[LayoutSlot] = field(default_factory=list)
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "orientation": self.orientation.value,
            "layout_slots": [slot.to_dict() for slot in self.layout_slots],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }


@dataclass(slots=True)
class QueueItem:
    """One playback entry; list position encodes playback order."""

    image_id: str
    variant_path: str
    color_palette: ColorPalette
    is_paired: bool = False
    paired_with: Optional[str] = None
    paired_variant_path: Optional[str] = None
    layout_type: LayoutType = LayoutType.SINGLE
    crop_percentage: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "image_id": self.image_id,
            "variant_path": self.variant_path,
            "color_palette": self.color_palette.to_dict(),
            "is_paired": self.is_paired,
            "paired_with": self.paired_with,
            "paired_variant_path": self.paired_variant_path,
            "layout_type": self.layout_type.value,
            "crop_percentage": self.crop_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueItem":
        return cls(
            image_id=data["image_id"],
            variant_path=data["variant_path"],
            color_palette=ColorPalette.from_dict(data.get("color_palette") or {}),
            is_paired=bool(data.get("is_paired", False)),
            paired_with=data.get("paired_with"),
            paired_variant_path=data.get("paired_variant_path"),
            layout_type=LayoutType(data.get("layout_type", LayoutType.SINGLE.value)),
            crop_percentage=float(data.get("crop_percentage", 0.0)),
        )


@dataclass(slots=True)
class SlideshowQueue:
    """Persisted playback sequence and cursor for one device."""

    device_id: str
    queue: list[QueueItem]
    current_index: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.queue)

    @property
    def remaining(self) -> int:
        return max(0, len(self.queue) - self.current_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "queue": [item.to_dict() for item in self.queue],
            "current_index": self.current_index,
            "generated_at": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SlideshowQueue":
        generated_at = datetime.fromisoformat(data["generated_at"])
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)
        return cls(
            device_id=data["device_id"],
            queue=[QueueItem.from_dict(item) for item in data.get("queue", [])],
            current_index=int(data.get("current_index", 0)),
            generated_at=generated_at,
        )


__all__ = [
    "AspectRatio",
    "ColorPalette",
    "Device",
    "LayoutEvaluation",
    "LayoutSlot",
    "LayoutType",
    "Orientation",
    "ProcessedVariant",
    "QueueItem",
    "SlideshowQueue",
]
