"""Per-component log levels read from ``logging_settings.conf``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": None,
}

# Components that map onto a named logger; ``terminal`` drives the console handler.
COMPONENT_LOGGERS = {
    "slideshow": "photoframe.slideshow",
    "requests": "uvicorn.access",
}

_DEFAULT_RETENTION_HOURS = 48


@dataclass(frozen=True)
class LoggingSettings:
    terminal_level: int | None = logging.INFO
    slideshow_level: int | None = logging.INFO
    requests_level: int | None = logging.INFO
    retention_hours: int = _DEFAULT_RETENTION_HOURS

    def logger_levels(self) -> dict[str, int | None]:
        """Level per logger name; ``None`` means the logger is silenced."""

        return {
            COMPONENT_LOGGERS["slideshow"]: self.slideshow_level,
            COMPONENT_LOGGERS["requests"]: self.requests_level,
        }


def _assignments(text: str) -> Iterator[tuple[str, str]]:
    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        yield key.lower(), value.lower()


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse the human-readable logging settings file.

    Lines look like ``slideshow = debug``; ``#`` starts a comment anywhere on
    a line. Unknown levels fall back to ``info`` and ``off`` silences the
    component. A missing file yields the defaults.
    """

    values: dict[str, int | None] = {}
    if path.exists():
        for key, value in _assignments(path.read_text(encoding="utf-8")):
            if key == "retention_hours":
                try:
                    values[key] = max(0, int(value))
                except ValueError:
                    values[key] = _DEFAULT_RETENTION_HOURS
            elif key == "terminal" or key in COMPONENT_LOGGERS:
                values[f"{key}_level"] = _LEVEL_MAP.get(value, logging.INFO)

    return LoggingSettings(**values)


def apply_logger_levels(settings: LoggingSettings) -> None:
    """Enable or silence each component logger according to ``settings``."""

    for name, level in settings.logger_levels().items():
        component_logger = logging.getLogger(name)
        component_logger.disabled = level is None
        if level is not None:
            component_logger.setLevel(level)


__all__ = [
    "COMPONENT_LOGGERS",
    "LoggingSettings",
    "apply_logger_levels",
    "parse_logging_settings",
]
