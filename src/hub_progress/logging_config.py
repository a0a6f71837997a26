"""Logging setup for the CLI and embedding applications."""
import logging.config
from pathlib import Path

from hub_progress.config import Settings

VERBOSE_FMT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


def build_logging_config(settings: Settings) -> dict:
    handlers = {
        "console": {
            "class": "rich.logging.RichHandler",
            "level": settings.log_level,
            "show_path": False,
            "rich_tracebacks": True,
        },
    }
    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.log_level,
            "formatter": "verbose",
            "filename": settings.log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {"format": VERBOSE_FMT, "datefmt": DATE_FMT},
        },
        "handlers": handlers,
        "loggers": {
            "hub_progress": {
                "handlers": list(handlers),
                "level": settings.log_level,
                "propagate": False,
            },
        },
    }


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig(build_logging_config(settings))
