"""
Logging configuration
"""
import sys

from loguru import logger

from campaign_analyst.config import get_settings


def setup_logger(level: str = None):
    """Configure logger with appropriate settings"""
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level or get_settings().log_level,
    )

    return logger


# Initialize logger
log = setup_logger()
