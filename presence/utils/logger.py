# presence/utils/logger.py
"""
Logging setup shared by every module: console plus a size-rotated file.
Destination and rotation come from Settings (LOG_DIR, LOG_FILE, LOG_MAX_BYTES,
LOG_BACKUP_COUNT); scan outcomes are tagged [OCCUPANCY], [ATTENDANCE] or [DENIED].
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from presence.config import settings

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def log_path() -> str:
    log_dir = settings.LOG_DIR
    if not os.path.isabs(log_dir):
        log_dir = os.path.join(PROJECT_ROOT, log_dir)
    return os.path.join(log_dir, settings.LOG_FILE)


_configured = False


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    level = settings.LOG_LEVEL.upper()
    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    path = log_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    file_handler = RotatingFileHandler(
        filename=path,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Named logger; configures the root handlers on first use."""
    _configure_root_logger()
    return logging.getLogger(name)
