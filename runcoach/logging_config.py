"""Central logging configuration for the RunCoach service."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from runcoach.config import get_settings

_configured = False

# Third-party loggers that are chatty at INFO (HTTP request lines, SDK retries).
_QUIET_LOGGERS = ("httpx", "httpcore", "anthropic", "sqlalchemy.engine")


def _default_config(log_dir: Path, level: str) -> dict:
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": fmt},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": str(log_dir / "runcoach.log"),
                "encoding": "utf-8",
                "formatter": "standard",
                "level": level,
            },
        },
        "loggers": {
            name: {"level": "WARNING", "propagate": True} for name in _QUIET_LOGGERS
        },
        "root": {
            "level": level,
            "handlers": ["console", "file"],
        },
    }


def configure_logging() -> None:
    """Configure application logging once per process."""

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
        log_dir = settings.log_dir
        configured_level = settings.log_level
    except ValidationError:
        # Settings can be incomplete in tooling contexts; log locally at INFO.
        log_dir = Path("logs")
        configured_level = "INFO"
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(_default_config(log_dir, configured_level.upper()))
    _configured = True
