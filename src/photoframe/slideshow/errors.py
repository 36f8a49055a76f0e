"""Exceptions raised by the slideshow engine."""

from __future__ import annotations


class SlideshowError(Exception):
    """Base class for slideshow precondition failures."""


class DeviceNotFoundError(SlideshowError, LookupError):
    """Raised when a device id is not registered."""

    def __init__(self, device_id: str):
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


class InvalidGeometryError(SlideshowError, ValueError):
    """Raised when image or device dimensions are not positive integers."""


__all__ = ["DeviceNotFoundError", "InvalidGeometryError", "SlideshowError"]
