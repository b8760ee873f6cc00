import logging
import sys
from typing import Optional

# Settings may have failed to load: INFO on stdout only
try:
    from pnl_report.config.settings import settings
    LOG_LEVEL = settings.LOG_LEVEL.upper() if settings else "INFO"
    LOG_FILE = settings.LOG_FILE if settings else None
except Exception:
    LOG_LEVEL = "INFO"
    LOG_FILE = None

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logging(name: str = "pnl_report", log_file: Optional[str] = LOG_FILE) -> logging.Logger:
    """
    Report logger: stdout, plus `log_file` when set, so that the
    warnings of a run can be read next to the transaction log.
    """
    logger = logging.getLogger(name)

    # Already configured
    if logger.handlers:
        return logger

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # requests logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
    return logger

logger = setup_logging()
