# simpledo/logging_config.py

import logging
import os
import sys
from loguru import logger

from . import config

# stdlib loggers whose records should show up next to ours
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "google_genai", "httpx")

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


class ForwardToLoguru(logging.Handler):
    """Re-emits a stdlib record through loguru, tagged with its logger name."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, f"[{record.name}] {record.getMessage()}")


def setup_logging(level: str = config.LOG_LEVEL, log_dir: str = config.LOG_DIR):
    logger.remove()
    logger.add(sys.stdout, format="<level>" + LOG_FORMAT + "</level>", level=level, colorize=True)

    # An empty LOG_DIR keeps everything on the console
    if log_dir:
        logger.add(os.path.join(log_dir, "simpledo.log"), format=LOG_FORMAT, level=level, rotation="10 MB", retention="7 days")

    handler = ForwardToLoguru()
    for name in FORWARDED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.propagate = False
