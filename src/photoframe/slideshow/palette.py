"""Colour-palette similarity used to pair images."""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, Protocol

from .models import ColorPalette

logger = logging.getLogger(__name__)

# sqrt(255**2 * 3): distance between black and white.
MAX_RGB_DISTANCE = 441.67
DEFAULT_PAIRING_THRESHOLD = 0.4

PRIMARY_WEIGHT = 0.5
SECONDARY_WEIGHT = 0.3
TERTIARY_WEIGHT = 0.2

_HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


class PairCandidate(Protocol):
    image_id: str
    color_palette: ColorPalette


def hex_to_rgb(value: str) -> tuple[int, int, int] | None:
    """Parse ``#RRGGBB`` (hash optional, any case); None when malformed."""

    if not isinstance(value, str):
        return None
    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        return None
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def rgb_to_hex(red: float, green: float, blue: float) -> str:
    return "#" + "".join(f"{round(channel):02X}" for channel in (red, green, blue))


def color_similarity(color1: str, color2: str) -> float:
    """Similarity in [0, 1] from Euclidean RGB distance; 0 for invalid colours."""

    rgb1 = hex_to_rgb(color1)
    rgb2 = hex_to_rgb(color2)
    if rgb1 is None or rgb2 is None:
        logger.debug("Invalid colour in similarity check: %r vs %r", color1, color2)
        return 0.0

    distance = math.dist(rgb1, rgb2)
    # MAX_RGB_DISTANCE is rounded down; black vs white would dip below zero.
    return max(0.0, 1 - distance / MAX_RGB_DISTANCE)


def palette_similarity(palette1: ColorPalette, palette2: ColorPalette) -> float:
    """Weighted similarity of the three leading palette colours."""

    return (
        PRIMARY_WEIGHT * color_similarity(palette1.primary, palette2.primary)
        + SECONDARY_WEIGHT * color_similarity(palette1.secondary, palette2.secondary)
        + TERTIARY_WEIGHT * color_similarity(palette1.tertiary, palette2.tertiary)
    )


def find_best_pair(
    target: PairCandidate,
    candidates: Iterable[PairCandidate],
    threshold: float = DEFAULT_PAIRING_THRESHOLD,
    exclude: Iterable[str] = (),
) -> str | None:
    """Return the id of the most similar candidate above ``threshold``.

    The target itself and ``exclude`` ids are skipped. The first candidate
    reaching the maximum similarity wins.
    """

    excluded = set(exclude)
    best_id: str | None = None
    best_similarity = -math.inf

    for candidate in candidates:
        if candidate.image_id == target.image_id or candidate.image_id in excluded:
            continue
        similarity = palette_similarity(target.color_palette, candidate.color_palette)
        if similarity > best_similarity:
            best_similarity = similarity
            best_id = candidate.image_id

    if best_id is not None and best_similarity > threshold:
        return best_id
    return None


__all__ = [
    "DEFAULT_PAIRING_THRESHOLD",
    "MAX_RGB_DISTANCE",
    "PairCandidate",
    "color_similarity",
    "find_best_pair",
    "hex_to_rgb",
    "palette_similarity",
    "rgb_to_hex",
]
