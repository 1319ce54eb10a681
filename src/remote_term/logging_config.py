"""Logging configuration for remote-term.

Logs go to the console through rich, and optionally to a file that is
rotated on startup once it grows too large.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"


def _rotate_log_if_needed(log_file: Path, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5) -> None:
    """Rotate *log_file* to ``.1`` (shifting older backups) if it exceeds *max_bytes*.

    Args:
        log_file: Path to the log file
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
    """
    if not log_file.exists() or log_file.stat().st_size < max_bytes:
        return

    oldest = log_file.with_name(f"{log_file.name}.{backup_count}")
    if oldest.exists():
        oldest.unlink()

    for i in range(backup_count - 1, 0, -1):
        source = log_file.with_name(f"{log_file.name}.{i}")
        if source.exists():
            source.rename(log_file.with_name(f"{log_file.name}.{i + 1}"))

    log_file.rename(log_file.with_name(f"{log_file.name}.1"))


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Configure the ``remote_term`` logger.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
        log_file: Optional file to append logs to

    Returns:
        The configured package logger

    Raises:
        ValueError: If *level* is not a known log level
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger("remote_term")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    console_handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    console_handler.setLevel(numeric_level)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _rotate_log_if_needed(log_file)

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger
