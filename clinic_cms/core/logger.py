import logging
import sys
from clinic_cms.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logging(level: str = settings.LOG_LEVEL) -> logging.Logger:
    """
    Configure the ``clinic_cms`` logger: one stdout handler, level from settings.
    """
    logger = logging.getLogger("clinic_cms")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    # SQL echo stays off unless explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(settings.SQL_LOG_LEVEL)

    return logger

logger = setup_logging()


def get_logger(name: str) -> logging.Logger:
    """Child logger, e.g. ``get_logger("schedule")`` -> ``clinic_cms.schedule``."""
    return logger.getChild(name)
