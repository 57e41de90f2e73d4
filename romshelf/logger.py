"""Loguru sinks for RomShelf: a coloured console and a rotating debug log."""

import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> "
    "<level>{level: <7}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> "
    "<level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

LOG_FILE_NAME = "romshelf.log"


def setup_logger(log_dir: Path | None = None, level: str = "INFO") -> Path:
    """Replace loguru's default handler with RomShelf's sinks.

    The console sink honours *level*; the file sink always records
    DEBUG so per-file scan decisions can be inspected afterwards.
    Returns the log file path.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_CONSOLE_FORMAT, colorize=True)

    if log_dir is None:
        from romshelf.config import Config
        log_dir = Config().data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    # Batch and scan workers log from QThreads
    logger.add(
        str(log_file),
        level="DEBUG",
        format=_FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        encoding="utf-8",
        enqueue=True,
    )
    logger.debug("Logging to {} (console level {})", log_file, level.upper())
    return log_file
