import hashlib
import logging
import math
from pathlib import Path

from narrator.shared.config import config

__all__ = [
    "config",
    "content_hash",
    "ensure_directory",
    "format_time",
    "setup_logging",
]


def setup_logging(service_name: str, log_level: str | None = None) -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    level_name = (log_level or config.get("log_level", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def content_hash(text: str, length: int = 16) -> str:
    """Return the first ``length`` hex characters of the SHA-256 digest of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def ensure_directory(path: str) -> None:
    """Ensure directory exists, create if not"""
    Path(path).mkdir(parents=True, exist_ok=True)


def format_time(seconds: float) -> str:
    """Format a playback position as ``M:SS``; non-finite or non-positive values render as ``0:00``."""
    if not math.isfinite(seconds) or seconds <= 0:
        return "0:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
