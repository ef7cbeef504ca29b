"""
Loguru-based logging configuration for the flight-schedule services.

Usage:
    from src.utils.logger import logger

    logger.info("Collecting flights...")
    logger.bind(event="time_parse_fallback").warning("Bad time string")
"""

import sys
from pathlib import Path

from loguru import logger

# Remove default handler
logger.remove()

# Log format with timestamp, level, module, and message
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Plain format for the file sink; bound extras are appended so that
# data-quality events (e.g. time parse fallbacks) stay greppable.
FILE_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{name}:{function}:{line} | "
    "{message} | {extra}"
)


def setup_logger(
    log_level: str = "DEBUG",
    log_dir: str | Path = "logs",
    log_file: str = "flight_schedules.log",
    rotation: str = "10 MB",
    retention: str = "7 days",
    enable_stdout: bool = True,
    enable_file: bool = True,
) -> None:
    """
    Configure the logger with stdout and file handlers.

    Args:
        log_level: Minimum log level to capture (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory to store log files
        log_file: Name of the log file
        rotation: When to rotate the log file (e.g., "10 MB", "1 day", "00:00")
        retention: How long to keep old log files (e.g., "7 days", "1 week")
        enable_stdout: Whether to output logs to stdout
        enable_file: Whether to output logs to file
    """
    logger.remove()

    if enable_stdout:
        logger.add(
            sys.stdout,
            format=LOG_FORMAT,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / log_file,
            format=FILE_LOG_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=True,
            enqueue=True,  # Thread-safe logging
        )

    logger.debug(f"Logger initialized with level={log_level}")


# Stdout only on import; main.py and the scheduler add the file sink
# from settings.
setup_logger(log_level="INFO", enable_file=False)


__all__ = ["logger", "setup_logger"]
