"""
Core logging module.

Routes application and library logging through Loguru.
"""

import logging
import os
import sys

from loguru import logger

from app.core.config import settings

# Library loggers whose own handlers are replaced by the intercept handler
INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "fastapi",
    "sqlalchemy.engine",
)


class InterceptHandler(logging.Handler):
    """
    Forward standard library log records to loguru.

    Modules in this package log through ``logging.getLogger(__name__)``;
    this handler keeps a single sink configuration for all of them.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back to the frame that issued the logging call
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _is_application_record(record) -> bool:
    # Redirect access records have their own sinks, see app.core.url_logger
    return record["extra"].get("event_type") != "url_access"


def setup_logging():
    """
    Configure loguru sinks and intercept standard library logging.

    Returns the configured loguru logger so callers can use it directly.
    """
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    level = settings.LOG_LEVEL.upper()

    logger.remove()

    if settings.DEBUG:
        logger.add(
            sys.stderr,
            level=level,
            format=settings.LOG_FORMAT,
            filter=_is_application_record,
            backtrace=True,
            diagnose=True,
        )

    file_sink_options = {
        "level": level,
        "rotation": settings.LOG_ROTATION,
        "retention": settings.LOG_RETENTION,
        "compression": "gz",
        "filter": _is_application_record,
    }
    if settings.LOG_JSON:
        file_sink_options["serialize"] = True
    else:
        file_sink_options["format"] = settings.LOG_FORMAT

    logger.add(os.path.join(settings.LOG_DIR, settings.LOG_FILENAME), **file_sink_options)

    # Level used by the redirect access log; re-registering an existing level fails
    try:
        logger.level("REQUEST")
    except ValueError:
        logger.level("REQUEST", no=25, color="<green>")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in list(logging.root.manager.loggerDict.keys()):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for log_name in INTERCEPTED_LOGGERS:
        logging.getLogger(log_name).handlers = [InterceptHandler()]
        logging.getLogger(log_name).propagate = False

    return logger
