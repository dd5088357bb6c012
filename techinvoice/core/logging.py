"""
Loguru setup shared by the API and the helper scripts.

Standard-library log records (uvicorn, httpx, openai) are routed into loguru
so everything ends up in one stream with the same format.
"""

import logging
import sys

from loguru import logger

from .config import settings


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None):
    """
    Configure loguru sinks and intercept stdlib logging.

    Args:
        level: Log level override (defaults to LOG_LEVEL setting)

    Returns:
        The configured loguru logger
    """
    level = (level or settings.log_level).upper()

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> | {extra}"
        ),
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False

    logger.info("Logging configured", app=settings.app_name, env=settings.app_env, level=level)
    return logger
