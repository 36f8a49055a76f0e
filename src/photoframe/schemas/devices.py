"""Request and response schemas for the device slideshow API."""

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from photoframe.slideshow.models import Device, LayoutSlot, LayoutType, Orientation


class LayoutSlotSchema(BaseModel):
    """A display region declared by a device."""

    type: LayoutType
    width: int = Field(..., gt=0, description="Width of the area one image fills")
    height: int = Field(..., gt=0, description="Height of the area one image fills")
    divider: Optional[int] = Field(default=None, ge=0)
    preferred_orientations: Optional[list[Orientation]] = Field(
        default=None,
        validation_alias=AliasChoices("preferred_orientations", "preferredOrientations"),
    )
    min_aspect_ratio: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("min_aspect_ratio", "minAspectRatio"),
    )
    max_aspect_ratio: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("max_aspect_ratio", "maxAspectRatio"),
    )

    @model_validator(mode="after")
    def _check_ratio_bounds(self) -> "LayoutSlotSchema":
        if (
            self.min_aspect_ratio is not None
            and self.max_aspect_ratio is not None
            and self.min_aspect_ratio > self.max_aspect_ratio
        ):
            raise ValueError("min_aspect_ratio must not exceed max_aspect_ratio")
        return self

    def to_slot(self) -> LayoutSlot:
        return LayoutSlot(
            type=self.type,
            width=self.width,
            height=self.height,
            divider=self.divider,
            preferred_orientations=(
                frozenset(self.preferred_orientations)
                if self.preferred_orientations is not None
                else None
            ),
            min_aspect_ratio=self.min_aspect_ratio,
            max_aspect_ratio=self.max_aspect_ratio,
        )


class DeviceRegistration(BaseModel):
    """Request body for registering or updating a device."""

    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    name: str = Field(..., min_length=1)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    orientation: Literal["portrait", "landscape"]
    layout_slots: list[LayoutSlotSchema] = Field(
        default_factory=list,
        validation_alias=AliasChoices("layout_slots", "layoutSlots", "layouts"),
    )

    def to_device(self) -> Device:
        return Device(
            id=self.id,
            name=self.name,
            width=self.width,
            height=self.height,
            orientation=Orientation(self.orientation),
            layout_slots=[slot.to_slot() for slot in self.layout_slots],
        )


class LayoutEvaluationRequest(BaseModel):
    """Image dimensions to evaluate against a device's layout slots.

    Positivity is left to the geometry classifier.
    """

    width: int
    height: int


class VariantCreate(BaseModel):
    """A variant rendered by the resize pipeline for a device's size bucket."""

    image_id: str = Field(..., min_length=1)
    variant_path: str = Field(..., min_length=1)
    width: int = Field(..., gt=0, description="Source image width")
    height: int = Field(..., gt=0, description="Source image height")
    colors: list[str] = Field(default_factory=list, description="Ordered hex palette")
    color_source: Optional[str] = None
    layout_type: LayoutType = LayoutType.SINGLE


class ColorPaletteResponse(BaseModel):
    primary: str
    secondary: str
    tertiary: str
    source_color: str
    all_colors: list[str]


class QueueItemResponse(BaseModel):
    """One slideshow entry."""

    image_id: str
    variant_path: str
    color_palette: ColorPaletteResponse
    is_paired: bool
    paired_with: Optional[str] = None
    paired_variant_path: Optional[str] = None
    layout_type: LayoutType
    crop_percentage: float


class SlideshowQueueResponse(BaseModel):
    """A device's playback queue and cursor."""

    device_id: str
    queue: list[QueueItemResponse]
    current_index: int
    generated_at: str


class DeviceResponse(BaseModel):
    """Registered device details."""

    id: str
    name: str
    width: int
    height: int
    orientation: Orientation
    layout_slots: list[dict]
    created_at: Optional[str] = None
    last_seen: Optional[str] = None


class LayoutEvaluationResponse(BaseModel):
    """Ranked layout fits for an image on a device."""

    orientation: Orientation
    ratio: float
    evaluations: list[dict]
    best: Optional[dict] = None
    legacy_layout_type: LayoutType
