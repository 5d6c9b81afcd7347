# core/log_manager.py
import sys
from loguru import logger

from flashdeck.config import LOG_LEVEL, LOG_FILE

# Replace loguru's default sink so the level comes from configuration
logger.remove()
logger.add(
    sys.stderr,
    level=LOG_LEVEL,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}",
)

if LOG_FILE:
    logger.add(LOG_FILE, level=LOG_LEVEL, rotation="1 MB", retention=3, encoding="utf-8")

__all__ = ["logger"]
