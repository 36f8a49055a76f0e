"""REST API endpoints for devices and their slideshow queues."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from photoframe.repository import SlideshowRepository
from photoframe.schemas.devices import (
    DeviceRegistration,
    DeviceResponse,
    LayoutEvaluationRequest,
    LayoutEvaluationResponse,
    QueueItemResponse,
    SlideshowQueueResponse,
    VariantCreate,
)
from photoframe.slideshow import (
    DeviceNotFoundError,
    InvalidGeometryError,
    SlideshowQueueService,
)
from photoframe.slideshow.geometry import classify
from photoframe.slideshow.layout import (
    determine_layout_type,
    evaluate_for_slots,
    legacy_layout_slots,
)
from photoframe.slideshow.utils import resolve_device_size_bucket

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/devices", tags=["devices"])


def _get_repository(request: Request) -> SlideshowRepository:
    repository = getattr(request.app.state, "slideshow_repository", None)
    if repository is None:
        raise HTTPException(status_code=503, detail="Slideshow storage not available")
    return repository


def _get_service(request: Request) -> SlideshowQueueService:
    service = getattr(request.app.state, "slideshow_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Slideshow service not available")
    return service


@router.get("", response_model=list[DeviceResponse])
async def list_devices(request: Request) -> list[dict[str, Any]]:
    """List registered devices."""
    devices = await _get_repository(request).list_devices()
    return [device.to_dict() for device in devices]


@router.post("", response_model=DeviceResponse)
async def register_device(request: Request, body: DeviceRegistration) -> dict[str, Any]:
    """Register a device or update its configuration."""
    device = await _get_repository(request).upsert_device(body.to_device())
    logger.info(
        "Registered device %s (%dx%d %s, %d layout slot(s))",
        device.id,
        device.width,
        device.height,
        device.orientation.value,
        len(device.layout_slots),
    )
    return device.to_dict()


@router.get("/{device_id}", response_model=DeviceResponse)
async def get_device(request: Request, device_id: str) -> dict[str, Any]:
    """Get a device's configuration."""
    device = await _get_repository(request).get_device(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return device.to_dict()


@router.delete("/{device_id}")
async def delete_device(request: Request, device_id: str) -> dict[str, Any]:
    """Remove a device and its slideshow state."""
    removed = await _get_repository(request).delete_device(device_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Device not found")
    return {"success": True, "device_id": device_id, "action": "deleted"}


@router.get("/{device_id}/slideshow", response_model=SlideshowQueueResponse)
async def get_slideshow(
    request: Request,
    device_id: str,
    regenerate: bool = Query(default=False, description="Force a fresh queue"),
) -> dict[str, Any]:
    """Return the device's queue, generating one if none is stored."""
    service = _get_service(request)
    try:
        if regenerate:
            queue = await service.regenerate(device_id)
        else:
            queue = await service.get_or_create(device_id)
    except DeviceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return queue.to_dict()


@router.post("/{device_id}/slideshow/regenerate", response_model=SlideshowQueueResponse)
async def regenerate_slideshow(request: Request, device_id: str) -> dict[str, Any]:
    """Discard the current queue and generate a new one."""
    try:
        queue = await _get_service(request).regenerate(device_id)
    except DeviceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return queue.to_dict()


@router.get("/{device_id}/next", response_model=QueueItemResponse)
async def next_image(request: Request, device_id: str) -> dict[str, Any]:
    """Advance the device's slideshow and return the next entry."""
    try:
        item = await _get_service(request).get_next(device_id)
    except DeviceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if item is None:
        raise HTTPException(status_code=404, detail="No images available")
    return item.to_dict()


@router.post("/{device_id}/layout", response_model=LayoutEvaluationResponse)
async def evaluate_layout(
    request: Request, device_id: str, body: LayoutEvaluationRequest
) -> dict[str, Any]:
    """Rank the device's layout slots for an image of the given size."""
    device = await _get_repository(request).get_device(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")

    slots = device.layout_slots or legacy_layout_slots(device.width, device.height)
    try:
        evaluations = evaluate_for_slots(body.width, body.height, slots)
        aspect = classify(body.width, body.height)
        legacy = determine_layout_type(body.width, body.height, device.width, device.height)
    except InvalidGeometryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "orientation": aspect.orientation,
        "ratio": aspect.ratio,
        "evaluations": [evaluation.to_dict() for evaluation in evaluations],
        "best": evaluations[0].to_dict() if evaluations else None,
        "legacy_layout_type": legacy,
    }


@router.post("/{device_id}/variants", status_code=201)
async def add_variant(
    request: Request, device_id: str, body: VariantCreate
) -> dict[str, Any]:
    """Record a processed variant in the device's size bucket."""
    repository = _get_repository(request)
    device = await repository.get_device(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")

    bucket = resolve_device_size_bucket(device.width, device.height, device.orientation)
    variant = await repository.add_variant(
        image_id=body.image_id,
        bucket=bucket,
        variant_path=body.variant_path,
        width=body.width,
        height=body.height,
        colors=body.colors,
        color_source=body.color_source,
        layout_type=body.layout_type,
    )
    return {
        "bucket": bucket,
        "image_id": variant.image_id,
        "variant_path": variant.variant_path,
        "layout_type": variant.layout_type.value,
        "color_palette": variant.color_palette.to_dict(),
    }


__all__ = ["router"]
