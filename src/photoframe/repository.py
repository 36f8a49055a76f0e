"""SQLite-backed repository for devices, variants and slideshow queues."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from .slideshow.models import (
    ColorPalette,
    Device,
    LayoutSlot,
    LayoutType,
    Orientation,
    ProcessedVariant,
    QueueItem,
    SlideshowQueue,
)

logger = logging.getLogger(__name__)

DEFAULT_DEVICES: tuple[Device, ...] = (
    Device(
        id="kitchen-display",
        name="Kitchen Display",
        width=1024,
        height=600,
        orientation=Orientation.LANDSCAPE,
    ),
    Device(
        id="bedroom-clock",
        name="Bedroom Clock",
        width=300,
        height=400,
        orientation=Orientation.PORTRAIT,
    ),
)


def _parse_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp and normalise it to UTC."""

    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    else:
        parsed = parsed.astimezone(timezone.utc)
    return parsed


def _decode_palette(raw: str | None, source_color: str | None, image_id: str) -> ColorPalette:
    if not raw:
        return ColorPalette()
    try:
        colors = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Malformed colour palette for %s; using black", image_id)
        return ColorPalette()
    if not isinstance(colors, list):
        logger.warning("Unexpected colour palette shape for %s; using black", image_id)
        return ColorPalette()
    return ColorPalette.from_colors([str(color) for color in colors], source_color)


class SlideshowRepository:
    """Persist devices, processed variants and per-device queue state."""

    def __init__(self, database_path: Path):
        self._path = database_path
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the SQLite connection and ensure tables exist."""

        if self._connection is not None:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._connection.execute("PRAGMA busy_timeout=5000;")
        await self._create_schema()

    async def _create_schema(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS devices (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                width INTEGER NOT NULL,
                height INTEGER NOT NULL,
                orientation TEXT NOT NULL,
                layouts TEXT,
                created_at TEXT NOT NULL,
                last_seen TEXT
            );

            CREATE TABLE IF NOT EXISTS device_variants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                image_id TEXT NOT NULL,
                bucket TEXT NOT NULL,
                variant_path TEXT NOT NULL,
                width INTEGER NOT NULL,
                height INTEGER NOT NULL,
                layout_type TEXT NOT NULL DEFAULT 'single',
                color_palette TEXT,
                color_source TEXT,
                processed_at TEXT NOT NULL,
                UNIQUE(image_id, bucket, layout_type)
            );

            CREATE TABLE IF NOT EXISTS device_queue_state (
                device_id TEXT PRIMARY KEY,
                queue_data TEXT NOT NULL,
                current_index INTEGER NOT NULL DEFAULT 0,
                generated_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_device_variants_bucket ON device_variants(bucket);
            """
        )
        await self._connection.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def _row_to_device(self, row: aiosqlite.Row) -> Device:
        layouts: list[dict[str, Any]] = json.loads(row["layouts"]) if row["layouts"] else []
        return Device(
            id=row["id"],
            name=row["name"],
            width=row["width"],
            height=row["height"],
            orientation=Orientation(row["orientation"]),
            layout_slots=[LayoutSlot.from_dict(slot) for slot in layouts],
            created_at=_parse_db_timestamp(row["created_at"]),
            last_seen=_parse_db_timestamp(row["last_seen"]),
        )

    async def get_device(self, device_id: str) -> Device | None:
        assert self._connection is not None

        cursor = await self._connection.execute(
            "SELECT * FROM devices WHERE id = ?",
            (device_id,),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if row is None:
            return None
        return self._row_to_device(row)

    async def list_devices(self) -> list[Device]:
        assert self._connection is not None

        cursor = await self._connection.execute("SELECT * FROM devices ORDER BY id")
        rows = await cursor.fetchall()
        await cursor.close()
        return [self._row_to_device(row) for row in rows]

    async def upsert_device(self, device: Device) -> Device:
        """Register a device or update an existing one, touching ``last_seen``."""

        assert self._connection is not None

        now = datetime.now(timezone.utc).isoformat()
        layouts = (
            json.dumps([slot.to_dict() for slot in device.layout_slots])
            if device.layout_slots
            else None
        )
        await self._connection.execute(
            """
            INSERT INTO devices (id, name, width, height, orientation, layouts, created_at, last_seen)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                width = excluded.width,
                height = excluded.height,
                orientation = excluded.orientation,
                layouts = excluded.layouts,
                last_seen = excluded.last_seen
            """,
            (
                device.id,
                device.name,
                device.width,
                device.height,
                device.orientation.value,
                layouts,
                now,
                now,
            ),
        )
        await self._connection.commit()

        stored = await self.get_device(device.id)
        assert stored is not None
        return stored

    async def delete_device(self, device_id: str) -> bool:
        """Remove a device together with its queue state."""

        assert self._connection is not None

        await self._connection.execute(
            "DELETE FROM device_queue_state WHERE device_id = ?",
            (device_id,),
        )
        cursor = await self._connection.execute(
            "DELETE FROM devices WHERE id = ?",
            (device_id,),
        )
        deleted = cursor.rowcount
        await cursor.close()
        await self._connection.commit()
        return bool(deleted)

    async def seed_default_devices(self) -> int:
        """Insert the default devices when no device is registered yet."""

        assert self._connection is not None

        cursor = await self._connection.execute("SELECT COUNT(*) FROM devices")
        row = await cursor.fetchone()
        await cursor.close()
        if row is not None and row[0] > 0:
            return 0

        for device in DEFAULT_DEVICES:
            await self.upsert_device(device)
            logger.info(
                "Registered default device %s (%dx%d %s)",
                device.id,
                device.width,
                device.height,
                device.orientation.value,
            )
        return len(DEFAULT_DEVICES)

    # ------------------------------------------------------------------
    # Processed variants
    # ------------------------------------------------------------------

    def _row_to_variant(self, row: aiosqlite.Row) -> ProcessedVariant:
        return ProcessedVariant(
            image_id=row["image_id"],
            variant_path=row["variant_path"],
            color_palette=_decode_palette(
                row["color_palette"], row["color_source"], row["image_id"]
            ),
            width=row["width"],
            height=row["height"],
            layout_type=LayoutType(row["layout_type"]),
        )

    async def add_variant(
        self,
        *,
        image_id: str,
        bucket: str,
        variant_path: str,
        width: int,
        height: int,
        colors: list[str] | None = None,
        color_source: str | None = None,
        layout_type: LayoutType = LayoutType.SINGLE,
    ) -> ProcessedVariant:
        """Record a variant rendered for one layout type.

        Re-rendering an image for the same bucket and layout type replaces it.
        """

        assert self._connection is not None

        await self._connection.execute(
            """
            INSERT INTO device_variants (
                image_id, bucket, variant_path, width, height,
                layout_type, color_palette, color_source, processed_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(image_id, bucket, layout_type) DO UPDATE SET
                variant_path = excluded.variant_path,
                width = excluded.width,
                height = excluded.height,
                color_palette = excluded.color_palette,
                color_source = excluded.color_source,
                processed_at = excluded.processed_at
            """,
            (
                image_id,
                bucket,
                variant_path,
                width,
                height,
                layout_type.value,
                json.dumps(colors) if colors is not None else None,
                color_source,
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        await self._connection.commit()

        return ProcessedVariant(
            image_id=image_id,
            variant_path=variant_path,
            color_palette=ColorPalette.from_colors(colors or [], color_source),
            width=width,
            height=height,
            layout_type=layout_type,
        )

    async def list_processed_variants(self, bucket: str) -> list[ProcessedVariant]:
        assert self._connection is not None

        cursor = await self._connection.execute(
            "SELECT * FROM device_variants WHERE bucket = ? ORDER BY image_id, layout_type",
            (bucket,),
        )
        rows = await cursor.fetchall()
        await cursor.close()
        return [self._row_to_variant(row) for row in rows]

    # ------------------------------------------------------------------
    # Queue state
    # ------------------------------------------------------------------

    async def load_queue(self, device_id: str) -> SlideshowQueue | None:
        assert self._connection is not None

        cursor = await self._connection.execute(
            """
            SELECT queue_data, current_index, generated_at
            FROM device_queue_state
            WHERE device_id = ?
            """,
            (device_id,),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if row is None:
            return None

        items = [QueueItem.from_dict(item) for item in json.loads(row["queue_data"])]
        return SlideshowQueue(
            device_id=device_id,
            queue=items,
            current_index=min(max(0, row["current_index"]), len(items)),
            generated_at=_parse_db_timestamp(row["generated_at"]) or datetime.now(timezone.utc),
        )

    async def save_queue(self, queue: SlideshowQueue) -> None:
        """Replace the stored queue and cursor for the device in one statement."""

        assert self._connection is not None

        await self._connection.execute(
            """
            INSERT INTO device_queue_state (device_id, queue_data, current_index, generated_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(device_id) DO UPDATE SET
                queue_data = excluded.queue_data,
                current_index = excluded.current_index,
                generated_at = excluded.generated_at,
                updated_at = excluded.updated_at
            """,
            (
                queue.device_id,
                json.dumps([item.to_dict() for item in queue.queue]),
                queue.current_index,
                queue.generated_at.isoformat(),
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        await self._connection.commit()

    async def delete_queue(self, device_id: str) -> None:
        assert self._connection is not None

        await self._connection.execute(
            "DELETE FROM device_queue_state WHERE device_id = ?",
            (device_id,),
        )
        await self._connection.commit()


__all__ = ["DEFAULT_DEVICES", "SlideshowRepository"]
