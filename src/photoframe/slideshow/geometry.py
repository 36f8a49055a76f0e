"""Aspect ratio classification and sizing helpers."""

from __future__ import annotations

from typing import Literal

from .errors import InvalidGeometryError
from .models import AspectRatio, Orientation

SQUARE_TOLERANCE = 0.05
# Largest ratio still classified as portrait.
PORTRAIT_MAX_RATIO = 1 - SQUARE_TOLERANCE

FitMode = Literal["cover", "contain"]


def _require_dimension(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidGeometryError(f"{name} must be a positive integer, got {value!r}")
    return value


def classify(width: int, height: int) -> AspectRatio:
    """Return the aspect ratio and orientation for the given dimensions."""

    width = _require_dimension("width", width)
    height = _require_dimension("height", height)
    ratio = width / height

    if abs(ratio - 1) < SQUARE_TOLERANCE:
        orientation = Orientation.SQUARE
    elif width > height:
        orientation = Orientation.LANDSCAPE
    else:
        orientation = Orientation.PORTRAIT

    return AspectRatio(width=width, height=height, ratio=ratio, orientation=orientation)


def aspect_ratio_matches(ratio1: float, ratio2: float, tolerance: float = 0.1) -> bool:
    return abs(ratio1 - ratio2) < tolerance


def calculate_target_dimensions(
    source_width: int,
    source_height: int,
    target_width: int,
    target_height: int,
    fit_mode: FitMode = "cover",
) -> tuple[int, int]:
    """Scale the source into the target box, keeping its aspect ratio.

    ``cover`` fills the box (the result overflows on one axis), ``contain``
    fits inside it (the result is letterboxed on one axis).
    """

    source_ratio = classify(source_width, source_height).ratio
    target_ratio = classify(target_width, target_height).ratio
    source_is_wider = source_ratio > target_ratio

    if fit_mode == "cover":
        if source_is_wider:
            return round(target_height * source_ratio), target_height
        return target_width, round(target_width / source_ratio)
    if fit_mode == "contain":
        if source_is_wider:
            return target_width, round(target_width / source_ratio)
        return round(target_height * source_ratio), target_height
    raise ValueError(f"Unknown fit mode: {fit_mode!r}")


def are_images_compatible_for_pairing(
    image1_width: int,
    image1_height: int,
    image2_width: int,
    image2_height: int,
    tolerance: float = 0.15,
) -> bool:
    """Both images must be portrait with similar aspect ratios."""

    ratio1 = classify(image1_width, image1_height).ratio
    ratio2 = classify(image2_width, image2_height).ratio
    if ratio1 >= 1 or ratio2 >= 1:
        return False
    return aspect_ratio_matches(ratio1, ratio2, tolerance)


def calculate_paired_portrait_layout(
    image1_width: int,
    image1_height: int,
    image2_width: int,
    image2_height: int,
    device_width: int,
    device_height: int,
) -> tuple[dict[str, int], dict[str, int]]:
    """Place two portrait images side by side, each covering half the frame.

    Each box carries ``x``/``y`` offsets (``y`` centres the scaled image
    vertically, so it is zero or negative) and the pane ``width``/``height``.
    """

    half_width = device_width // 2
    _, height1 = calculate_target_dimensions(
        image1_width, image1_height, half_width, device_height, "cover"
    )
    _, height2 = calculate_target_dimensions(
        image2_width, image2_height, half_width, device_height, "cover"
    )

    first = {
        "x": 0,
        "y": (device_height - height1) // 2,
        "width": half_width,
        "height": device_height,
    }
    second = {
        "x": half_width,
        "y": (device_height - height2) // 2,
        "width": half_width,
        "height": device_height,
    }
    return first, second


__all__ = [
    "PORTRAIT_MAX_RATIO",
    "SQUARE_TOLERANCE",
    "are_images_compatible_for_pairing",
    "aspect_ratio_matches",
    "calculate_paired_portrait_layout",
    "calculate_target_dimensions",
    "classify",
]
