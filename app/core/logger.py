import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure the application logger.

    The level comes from ``LOG_LEVEL`` unless given. SQLAlchemy's engine
    logger joins the same handler when ``LOG_SQL`` is on, which shows the
    statements behind a booking or merge without turning on ``echo``.
    """
    level = (level or settings.LOG_LEVEL).upper()

    logger = logging.getLogger("clinicbook")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    sql_logger = logging.getLogger("sqlalchemy.engine")
    if settings.LOG_SQL:
        sql_logger.setLevel(logging.INFO)
        for handler in logger.handlers:
            if handler not in sql_logger.handlers:
                sql_logger.addHandler(handler)

    return logger

logger = setup_logging()
