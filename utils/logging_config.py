from __future__ import annotations

import logging
from pathlib import Path

from loguru import logger


TEXT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} {level} {message} {extra}"


class InterceptHandler(logging.Handler):
    """Forward stdlib records (aiohttp, adapters) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(*, json_output: bool = False, debug: bool = False, log_file: Path | None = None) -> None:
    level = "DEBUG" if debug else "INFO"
    logger.remove()
    logger.add(lambda msg: print(msg, end=""), level=level, format=TEXT_FORMAT, serialize=json_output)
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, level="DEBUG", rotation="1 MB", retention=5, serialize=json_output)
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.DEBUG if debug else logging.INFO, force=True)
