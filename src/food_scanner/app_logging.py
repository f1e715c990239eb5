"""Logging configuration helpers."""

import logging

LOGGER_NAME = "food_scanner"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach one stream handler to the package logger and set its level.

    Repeated calls only adjust the level, so app factories built in tests do
    not stack handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
