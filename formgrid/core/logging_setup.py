import logging
from typing import Optional

from formgrid.core.config import settings

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger for hosts embedding the engine"""
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=settings.LOG_FORMAT or DEFAULT_FORMAT,
        force=True  # Force reconfiguration of the root logger
    )
    logger = logging.getLogger("formgrid")
    logger.info("Logging configured at %s", level_name)
    return logger
