"""Logging setup shared by the API process and background deliveries."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger."""

    logger = logging.getLogger("rcrpm")
    logger.setLevel(level.upper())
    if any(getattr(handler, "_rcrpm_handler", False) for handler in logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._rcrpm_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
