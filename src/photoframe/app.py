"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, Settings, get_settings
from .logging_handlers import DateStampedFileHandler, cleanup_old_logs
from .logging_settings import apply_logger_levels, parse_logging_settings
from .repository import SlideshowRepository
from .routers.devices import router as devices_router
from .slideshow import QueueGenerator, SlideshowQueueService

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_under(base: Path, p: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def _configure_logging(settings: Settings) -> None:
    """Configure logging from LOG_LEVEL and the logging settings file."""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    component_levels = parse_logging_settings(
        _resolve_under(PROJECT_ROOT, settings.logging_settings_path)
    )
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = []

    if settings.log_dir is not None:
        log_dir = _resolve_under(PROJECT_ROOT, settings.log_dir)
        file_handler = DateStampedFileHandler(log_dir, tz=ZoneInfo(settings.log_timezone))
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if component_levels.terminal_level is not None:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(component_levels.terminal_level)
        handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers or [logging.NullHandler()],
        force=True,  # Override any existing configuration
    )

    logging.getLogger("photoframe").setLevel(log_level)

    apply_logger_levels(component_levels)

    if settings.log_dir is not None:
        cleanup_old_logs(
            _resolve_under(PROJECT_ROOT, settings.log_dir),
            component_levels.retention_hours,
            logger=logging.getLogger("photoframe"),
        )


def create_app() -> FastAPI:
    # Load .env before settings so LOG_* values are visible
    load_dotenv()

    settings = get_settings()
    _configure_logging(settings)

    database_path = _resolve_under(PROJECT_ROOT, settings.slideshow_database_path)
    repository = SlideshowRepository(database_path)
    generator = QueueGenerator(
        repository,
        rng=random.Random(),
        queue_size=settings.slideshow_queue_size,
        pairing_threshold=settings.slideshow_pairing_threshold,
    )
    slideshow_service = SlideshowQueueService(repository, generator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await repository.initialize()
        if settings.seed_default_devices:
            seeded = await repository.seed_default_devices()
            if seeded:
                logging.getLogger(__name__).info("Seeded %d default device(s)", seeded)
        try:
            yield
        finally:
            await repository.close()

    app = FastAPI(
        title="Photo Frame Slideshow Backend",
        version="0.1.0",
        description="Layout-aware slideshow sequencing for a photo-frame fleet.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.slideshow_repository = repository
    app.state.queue_generator = generator
    app.state.slideshow_service = slideshow_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(devices_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | int | float]:
        return {
            "status": "ok",
            "queue_size": settings.slideshow_queue_size,
            "pairing_threshold": settings.slideshow_pairing_threshold,
        }

    return app


__all__ = ["create_app"]
