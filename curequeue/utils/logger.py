import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from curequeue.config import get_settings

settings = get_settings()

LEVEL = logging.DEBUG if settings.APP_DEBUG else logging.INFO

CONSOLE_FORMAT = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
FILE_FORMAT = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _rotating(log_dir: Path, filename: str, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
    )
    handler.setLevel(level)
    handler.setFormatter(FILE_FORMAT)
    return handler


def _configure() -> logging.Logger:
    """stdout + logs/app.log (INFO and up) + logs/errors.log (ERROR and up)."""
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger(settings.APP_NAME)
    root.setLevel(LEVEL)
    # uvicorn --reload imports this module again
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(LEVEL)
    console.setFormatter(CONSOLE_FORMAT)
    root.addHandler(console)
    root.addHandler(_rotating(log_dir, "app.log", logging.INFO))
    root.addHandler(_rotating(log_dir, "errors.log", logging.ERROR))
    return root


logger = _configure()


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance. If name is provided, returns a child logger."""
    if name:
        return logger.getChild(name)
    return logger
