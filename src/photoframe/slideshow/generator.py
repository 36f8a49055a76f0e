"""Slideshow queue generation with colour-aware portrait pairing."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from .errors import DeviceNotFoundError
from .geometry import classify
from .layout import crop_percentage, evaluate_for_slots, legacy_layout_slots
from .models import (
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
from .palette import DEFAULT_PAIRING_THRESHOLD, find_best_pair
from .protocols import SlideshowStorage
from .utils import BucketResolver, resolve_device_size_bucket, shuffled

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

_PAIR_TYPES = (LayoutType.PAIR_VERTICAL, LayoutType.PAIR_HORIZONTAL)


@dataclass(slots=True)
class _Candidate:
    """One source image with its rendered variants and layout decisions.

    ``single`` is used when the image is shown alone; ``paired`` holds one
    evaluation per pair layout type, best first.
    """

    image_id: str
    color_palette: ColorPalette
    orientation: Orientation
    variants: dict[LayoutType, ProcessedVariant]
    single: LayoutEvaluation
    paired: dict[LayoutType, LayoutEvaluation] = field(default_factory=dict)

    @property
    def preferred_pair_type(self) -> LayoutType:
        return next(iter(self.paired))

    def variant_path(self, layout_type: LayoutType) -> str:
        """Path of the variant rendered for ``layout_type``, else the single one."""

        variant = self.variants.get(layout_type) or self.variants.get(LayoutType.SINGLE)
        if variant is None:
            variant = next(iter(self.variants.values()))
        return variant.variant_path

    def to_item(self) -> QueueItem:
        return QueueItem(
            image_id=self.image_id,
            variant_path=self.variant_path(LayoutType.SINGLE),
            color_palette=self.color_palette,
            layout_type=self.single.layout_type,
            crop_percentage=self.single.crop_percentage,
        )

    def to_paired_item(self, partner: "_Candidate", layout_type: LayoutType) -> QueueItem:
        layout = self.paired[layout_type]
        return QueueItem(
            image_id=self.image_id,
            variant_path=self.variant_path(layout_type),
            color_palette=self.color_palette,
            is_paired=True,
            paired_with=partner.image_id,
            paired_variant_path=partner.variant_path(layout_type),
            layout_type=layout_type,
            crop_percentage=layout.crop_percentage,
        )


def _fallback_evaluation(
    device: Device,
    slots: Sequence[LayoutSlot],
    layout_type: LayoutType,
    image_width: int,
    image_height: int,
) -> LayoutEvaluation:
    """Evaluate the image against a slot of ``layout_type`` ignoring ratio bounds.

    The first declared slot of that type supplies the box; without one the
    device frame is used whole or split in half.
    """

    slot = next((s for s in slots if s.type is layout_type), None)
    if slot is not None:
        width, height = slot.width, slot.height
    elif layout_type is LayoutType.PAIR_VERTICAL:
        width, height = max(1, device.width // 2), device.height
    elif layout_type is LayoutType.PAIR_HORIZONTAL:
        width, height = device.width, max(1, device.height // 2)
    else:
        width, height = device.width, device.height

    return LayoutEvaluation(
        layout_type=layout_type,
        width=width,
        height=height,
        crop_percentage=crop_percentage(image_width, image_height, width, height),
        is_preferred=False,
    )


def _group_by_image(
    variants: Sequence[ProcessedVariant],
) -> dict[str, dict[LayoutType, ProcessedVariant]]:
    grouped: dict[str, dict[LayoutType, ProcessedVariant]] = {}
    for variant in variants:
        grouped.setdefault(variant.image_id, {})[variant.layout_type] = variant
    return grouped


class QueueGenerator:
    """Build bounded, shuffled playback queues for devices."""

    def __init__(
        self,
        storage: SlideshowStorage,
        *,
        rng: random.Random | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        pairing_threshold: float = DEFAULT_PAIRING_THRESHOLD,
        bucket_resolver: BucketResolver = resolve_device_size_bucket,
    ) -> None:
        if queue_size < 0:
            raise ValueError("queue_size must not be negative")
        self._storage = storage
        self._rng = rng or random.Random()
        self.queue_size = queue_size
        self.pairing_threshold = pairing_threshold
        self._bucket_resolver = bucket_resolver

    async def generate(self, device_id: str) -> SlideshowQueue:
        """Generate a fresh queue for ``device_id`` with the cursor at zero."""

        device = await self._storage.get_device(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)

        bucket = self._bucket_resolver(device.width, device.height, device.orientation)
        variants = await self._storage.list_processed_variants(bucket)
        items = self.build_queue(device, variants)

        paired = sum(1 for item in items if item.is_paired)
        logger.info(
            "Generated slideshow queue for %s: %d items (%d paired) from %d variants in %s",
            device_id,
            len(items),
            paired,
            len(variants),
            bucket,
        )
        return SlideshowQueue(
            device_id=device_id,
            queue=items,
            current_index=0,
            generated_at=datetime.now(timezone.utc),
        )

    def build_queue(self, device: Device, variants: Sequence[ProcessedVariant]) -> list[QueueItem]:
        """Order ``variants`` into playback items for ``device`` without any I/O.

        Variants of the same image rendered for different layout types form
        one candidate.
        """

        slots = device.layout_slots or legacy_layout_slots(device.width, device.height)
        candidates = [
            self._prepare(device, slots, image_id, rendered)
            for image_id, rendered in _group_by_image(variants).items()
        ]
        portraits = [c for c in candidates if c.orientation is Orientation.PORTRAIT]

        if device.orientation is Orientation.PORTRAIT and len(portraits) >= 2:
            items = self._pair_portraits(portraits)
        else:
            items = [c.to_item() for c in shuffled(candidates, self._rng)[: self.queue_size]]

        items = self._fill(items, candidates)
        return items[: self.queue_size]

    def _prepare(
        self,
        device: Device,
        slots: Sequence[LayoutSlot],
        image_id: str,
        rendered: dict[LayoutType, ProcessedVariant],
    ) -> _Candidate:
        source = rendered.get(LayoutType.SINGLE) or next(iter(rendered.values()))
        aspect = classify(source.width, source.height)
        evaluations = evaluate_for_slots(source.width, source.height, slots)

        single = next((ev for ev in evaluations if ev.layout_type is LayoutType.SINGLE), None)
        if single is None:
            logger.debug(
                "No single slot on %s accepts %s (ratio %.3f); using full frame",
                device.id,
                image_id,
                aspect.ratio,
            )
            single = _fallback_evaluation(
                device, slots, LayoutType.SINGLE, source.width, source.height
            )

        paired: dict[LayoutType, LayoutEvaluation] = {}
        for evaluation in evaluations:
            if evaluation.layout_type.is_paired:
                paired.setdefault(evaluation.layout_type, evaluation)
        for layout_type in _PAIR_TYPES:
            if layout_type not in paired:
                paired[layout_type] = _fallback_evaluation(
                    device, slots, layout_type, source.width, source.height
                )

        return _Candidate(
            image_id=image_id,
            color_palette=source.color_palette,
            orientation=aspect.orientation,
            variants=rendered,
            single=single,
            paired=paired,
        )

    def _pair_portraits(self, portraits: list[_Candidate]) -> list[QueueItem]:
        order = shuffled(portraits, self._rng)
        by_id = {c.image_id: c for c in order}
        consumed: set[str] = set()
        items: list[QueueItem] = []

        for candidate in order:
            if len(items) >= self.queue_size:
                break
            if candidate.image_id in consumed:
                continue
            consumed.add(candidate.image_id)

            partner_id = None
            # A pair needs two positions; truncation must not split it.
            if self.queue_size - len(items) >= 2:
                partner_id = find_best_pair(
                    candidate, order, self.pairing_threshold, exclude=consumed
                )

            if partner_id is None:
                items.append(candidate.to_item())
                continue

            partner = by_id[partner_id]
            consumed.add(partner_id)
            layout_type = candidate.preferred_pair_type
            items.append(candidate.to_paired_item(partner, layout_type))
            items.append(partner.to_paired_item(candidate, layout_type))

        return items

    def _fill(self, items: list[QueueItem], candidates: list[_Candidate]) -> list[QueueItem]:
        while len(items) < self.queue_size and candidates:
            for candidate in shuffled(candidates, self._rng):
                if len(items) >= self.queue_size:
                    break
                items.append(candidate.to_item())
        return items


__all__ = ["DEFAULT_QUEUE_SIZE", "QueueGenerator"]
