"""Layout slot selection based on crop cost."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from .geometry import PORTRAIT_MAX_RATIO, classify
from .models import AspectRatio, LayoutEvaluation, LayoutSlot, LayoutType, Orientation

# Ratios closer than this are treated as identical.
_RATIO_EPSILON = 0.001


@dataclass(slots=True, frozen=True)
class LayoutConfiguration:
    """Legacy single-or-paired decision for an image on a device."""

    device_width: int
    device_height: int
    device_orientation: Orientation
    image_aspect_ratio: AspectRatio
    layout_type: LayoutType
    crop_strategy: str = "center"


def crop_percentage(
    source_width: int, source_height: int, target_width: int, target_height: int
) -> float:
    """Percentage of the scaled source lost when covering the target box."""

    source_ratio = classify(source_width, source_height).ratio
    target_ratio = classify(target_width, target_height).ratio

    if abs(source_ratio - target_ratio) < _RATIO_EPSILON:
        return 0.0

    if source_ratio > target_ratio:
        used_width = target_height * source_ratio
        return (used_width - target_width) / used_width * 100

    used_height = target_width / source_ratio
    return (used_height - target_height) / used_height * 100


def evaluate_for_slots(
    image_width: int, image_height: int, slots: Iterable[LayoutSlot]
) -> list[LayoutEvaluation]:
    """Rank the slots that accept the image, least crop first.

    Slots whose aspect-ratio bounds exclude the image are dropped. Equal crops
    rank preferred slots first and otherwise keep the configured order.
    """

    aspect = classify(image_width, image_height)
    evaluations: list[LayoutEvaluation] = []

    for slot in slots:
        if not slot.accepts_ratio(aspect.ratio):
            continue
        preferred = slot.preferred_orientations or frozenset()
        evaluations.append(
            LayoutEvaluation(
                layout_type=slot.type,
                width=slot.width,
                height=slot.height,
                crop_percentage=crop_percentage(
                    image_width, image_height, slot.width, slot.height
                ),
                is_preferred=aspect.orientation in preferred,
            )
        )

    evaluations.sort(key=lambda ev: (ev.crop_percentage, not ev.is_preferred))
    return evaluations


def select_best(
    image_width: int, image_height: int, slots: Iterable[LayoutSlot]
) -> LayoutEvaluation | None:
    evaluations = evaluate_for_slots(image_width, image_height, slots)
    return evaluations[0] if evaluations else None


def determine_layout_type(
    image_width: int, image_height: int, device_width: int, device_height: int
) -> LayoutType:
    """Legacy rule: portrait images on landscape devices are shown paired."""

    image = classify(image_width, image_height)
    device = classify(device_width, device_height)
    if image.orientation is Orientation.PORTRAIT and device.orientation is Orientation.LANDSCAPE:
        return LayoutType.PAIR_VERTICAL
    return LayoutType.SINGLE


def determine_layout_configuration(
    image_width: int, image_height: int, device_width: int, device_height: int
) -> LayoutConfiguration:
    device = classify(device_width, device_height)
    return LayoutConfiguration(
        device_width=device_width,
        device_height=device_height,
        device_orientation=(
            Orientation.PORTRAIT
            if device.orientation is Orientation.PORTRAIT
            else Orientation.LANDSCAPE
        ),
        image_aspect_ratio=classify(image_width, image_height),
        layout_type=determine_layout_type(
            image_width, image_height, device_width, device_height
        ),
    )


def legacy_layout_slots(
    device_width: int, device_height: int, divider: int = 0
) -> list[LayoutSlot]:
    """Slots that reproduce :func:`determine_layout_type` through the selector.

    A landscape device gets a full-frame slot closed to portrait images and a
    half-width pair slot open only to them. Any other device gets one
    unconstrained full-frame slot.
    """

    device = classify(device_width, device_height)
    if device.orientation is not Orientation.LANDSCAPE:
        return [LayoutSlot(type=LayoutType.SINGLE, width=device_width, height=device_height)]

    pane_width = max(1, (device_width - divider) // 2)
    return [
        LayoutSlot(
            type=LayoutType.SINGLE,
            width=device_width,
            height=device_height,
            min_aspect_ratio=math.nextafter(PORTRAIT_MAX_RATIO, math.inf),
        ),
        LayoutSlot(
            type=LayoutType.PAIR_VERTICAL,
            width=pane_width,
            height=device_height,
            divider=divider or None,
            preferred_orientations=frozenset({Orientation.PORTRAIT}),
            max_aspect_ratio=PORTRAIT_MAX_RATIO,
        ),
    ]


__all__ = [
    "LayoutConfiguration",
    "crop_percentage",
    "determine_layout_configuration",
    "determine_layout_type",
    "evaluate_for_slots",
    "legacy_layout_slots",
    "select_best",
]
