"""Helpers shared by the slideshow generator and its callers."""

from __future__ import annotations

import random
from typing import Callable, Sequence, TypeVar

from .models import Orientation

T = TypeVar("T")

BucketResolver = Callable[[int, int, Orientation], str]


def resolve_device_size_bucket(width: int, height: int, orientation: Orientation | str) -> str:
    """Map device dimensions to the variant bucket rendered for it."""

    if Orientation(orientation) is Orientation.PORTRAIT:
        if height >= 1000:
            return "medium-portrait"
        return "small-portrait"
    if width >= 1800:
        return "large-landscape"
    if width >= 1000:
        return "medium-landscape"
    return "small-landscape"


def shuffled(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a Fisher-Yates shuffled copy of ``items``."""

    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


__all__ = ["BucketResolver", "resolve_device_size_bucket", "shuffled"]
