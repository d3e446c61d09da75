"""
Loguru sink setup shared by the CLI and the Flask app.
"""
import sys
from pathlib import Path
from typing import Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> "
    "<level>[{level}]</level> "
    "<cyan>{name}</cyan>: {message}"
)
ROTATION = "5 MB"
RETENTION = 5


def setup_logging(level: str = "INFO", log_dir: Union[str, Path] = "logs") -> None:
    """
    Route logs to stderr plus rotating JSON files.

    app.log receives everything at ``level`` and above, error.log only
    errors. Safe to call more than once; earlier sinks are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    logger.add(
        log_dir / "app.log",
        level=level,
        rotation=ROTATION,
        retention=RETENTION,
        serialize=True,
        enqueue=True,
    )
    logger.add(
        log_dir / "error.log",
        level="ERROR",
        rotation=ROTATION,
        retention=RETENTION,
        serialize=True,
        enqueue=True,
    )
