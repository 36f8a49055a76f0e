#!/usr/bin/env python3
"""
Register the photo-frame fleet in the slideshow database.
Devices come from a JSON file (list of device objects) or the built-in fleet.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from photoframe.config import get_settings  # noqa: E402
from photoframe.repository import SlideshowRepository  # noqa: E402
from photoframe.schemas.devices import DeviceRegistration  # noqa: E402

FLEET = [
    {
        "id": "kitchen-display",
        "name": "Kitchen Display",
        "width": 1024,
        "height": 600,
        "orientation": "landscape",
    },
    {
        "id": "hallway-frame",
        "name": "Hallway Frame",
        "width": 800,
        "height": 480,
        "orientation": "landscape",
        "layouts": [
            {"type": "single", "width": 800, "height": 480},
            {
                "type": "pair-vertical",
                "width": 396,
                "height": 480,
                "divider": 8,
                "preferredOrientations": ["portrait"],
                "maxAspectRatio": 0.95,
            },
        ],
    },
]


def load_fleet(path: Path | None) -> list[DeviceRegistration]:
    """Validate device definitions from ``path`` or the built-in fleet."""

    raw = json.loads(path.read_text(encoding="utf-8")) if path else FLEET
    return [DeviceRegistration.model_validate(entry) for entry in raw]


async def register(devices: list[DeviceRegistration], database: Path) -> None:
    repository = SlideshowRepository(database)
    await repository.initialize()
    try:
        for registration in devices:
            device = await repository.upsert_device(registration.to_device())
            print(
                f"✓ Registered: {device.name} - {device.width}x{device.height} "
                f"{device.orientation.value} ({len(device.layout_slots)} layout slot(s))"
            )
    finally:
        await repository.close()

    print(f"\n✅ Successfully registered {len(devices)} devices")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", type=Path, help="JSON file with device definitions")
    parser.add_argument(
        "--database",
        type=Path,
        help="SQLite database path (defaults to SLIDESHOW_DATABASE_PATH)",
    )
    args = parser.parse_args()

    database = args.database or get_settings().slideshow_database_path
    if not database.is_absolute():
        database = PROJECT_ROOT / database

    asyncio.run(register(load_fleet(args.file), database))


if __name__ == "__main__":
    main()
