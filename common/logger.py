import logging
import sys
from typing import Optional, TextIO

from common.config import env_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Named logger with a single handler. Logs go to stderr so the CLIs can keep
    stdout for answers; level comes from DOCS_KB_LOG_LEVEL.
    """
    logger = logging.getLogger(name or "docs_kb")
    if logger.handlers:
        return logger
    logger.setLevel(env_settings.log_level.upper())

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
