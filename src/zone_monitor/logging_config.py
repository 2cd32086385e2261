"""
Logging configuration for the zone monitor.

Sets up console (and optionally file) handlers and quiets the HTTP client
and server libraries so that one line per refresh cycle stays readable.
"""
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional


NOISY_LOGGERS = (
    'httpx',
    'httpcore',
    'asyncio',
    'uvicorn.access',
    'websockets',
)


def configure_production_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    enable_file_logging: bool = False,
    enable_console_logging: bool = True,
) -> None:
    """
    Configure application logging.

    This function:
    1. Sets up console and file logging handlers
    2. Lowers httpx/httpcore request chatter to WARNING
    3. Keeps application logs at the specified level

    Args:
        log_level: Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None and enable_file_logging=True,
                 creates logs/monitor_YYYYMMDD.log
        enable_file_logging: Whether to log to file
        enable_console_logging: Whether to log to console

    Example:
        >>> from zone_monitor.logging_config import configure_production_logging
        >>> configure_production_logging(log_level="INFO")
    """
    handlers = []
    level = getattr(logging, log_level.upper(), logging.INFO)

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    if enable_file_logging:
        if log_file is None:
            log_dir = Path("logs")
            log_dir.mkdir(exist_ok=True)
            log_file = log_dir / f"monitor_{datetime.now().strftime('%Y%m%d')}.log"

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # File captures everything
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Root goes to DEBUG when a file handler is attached; handlers filter output
    root_level = logging.DEBUG if enable_file_logging else level
    logging.basicConfig(
        level=root_level,
        handlers=handlers,
        force=True
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app_level = logging.DEBUG if enable_file_logging else level
    logging.getLogger('zone_monitor').setLevel(app_level)
    logging.getLogger('__main__').setLevel(app_level)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s file=%s", log_level.upper(), log_file if enable_file_logging else None)
