"""
Loguru setup for the analysis service.

Every record carries the service name and the symbol being analyzed
(bound with ``logger.contextualize(symbol=...)``; "-" outside a symbol).

Usage:
    from ai_trading.core.logging import setup_logging

    setup_logging(get_settings(), level="DEBUG")
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ai_trading.config.settings import Settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[service]}</cyan> | "
    "<magenta>{extra[symbol]: <6}</magenta> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[service]} | {extra[symbol]} | {name}:{line} | {message}"
)


def setup_logging(
    settings: Settings,
    level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
) -> Optional[Path]:
    """
    Replace loguru's default sink with the service sinks.

    Args:
        settings: Source of the level, service name and file sink options
        level: Overrides settings.log_level
        log_to_file: Overrides settings.log_to_file

    Returns:
        Path of the log file, or None when only stderr is used
    """
    level = (level or settings.log_level).upper()
    if log_to_file is None:
        log_to_file = settings.log_to_file

    logger.remove()
    logger.configure(extra={"service": settings.log_service_name, "symbol": "-"})
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if not log_to_file:
        return None

    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{settings.log_service_name}.log"
    logger.add(
        log_path,
        format=FILE_FORMAT,
        level=level,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        compression="gz",
    )
    logger.debug(f"Writing logs to {log_path}")
    return log_path
