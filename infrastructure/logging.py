"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger

VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG", "TRACE")
CONSOLE_FORMAT = "<level>{level: <7}</level> {message}"


def level_for_verbosity(verbosity: int) -> str:
    """Map a `-v` count to a loguru level name."""
    return VERBOSITY_LEVELS[max(0, min(verbosity, len(VERBOSITY_LEVELS) - 1))]


def init_logging(verbosity: int = 0, log_dir: str | Path | None = None) -> None:
    """Log to stderr at the level chosen by `verbosity`.

    When `log_dir` is given, a rotating file log is written there as well.
    """
    level = level_for_verbosity(verbosity)
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, backtrace=False, diagnose=False)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path / "archive_{time:YYYYMMDD}.log"),
            rotation="10 MB",
            retention="10 days",
            compression="zip",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            level=level,
        )


def find_latest_log_file(log_dir: str | Path) -> Path | None:
    """Find the latest log file in the specified directory."""
    try:
        log_path = Path(log_dir)
        if not log_path.exists():
            return None

        log_files = list(log_path.glob("archive_*.log"))
        if not log_files:
            return None

        return max(log_files, key=lambda p: p.stat().st_mtime)
    except (OSError, ValueError):
        return None
