from __future__ import annotations

import logging
import sys

"""Console logging for hubprop.

Output lines look like ``INFO ...``, ``WARN ...``, ``ERROR ...`` or
``SUMMARY ...``. The CLI and the gateway both write through the ``hubprop``
logger; module loggers (``logging.getLogger(__name__)``) reach it by
propagation.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "hubprop"
SUMMARY_LEVEL = 25  # INFO < SUMMARY < WARNING

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``<LABEL> <message>``; WARNING is shortened to WARN."""

    labels = {logging.WARNING: "WARN", SUMMARY_LEVEL: "SUMMARY"}

    def format(self, record: logging.LogRecord) -> str:
        label = self.labels.get(record.levelno, record.levelname)
        text = f"{label} {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a single stdout handler to the ``hubprop`` logger.

    Repeated calls return the already configured logger.
    """
    global _configured
    if _configured is not None:
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(LabeledFormatter())
    app_logger.addHandler(console)
    # root への二重出力を防ぐ
    app_logger.propagate = False

    _configured = app_logger
    return app_logger


def get_logger() -> logging.Logger:
    return _configured or setup_logging()


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger so the next setup_logging() starts over."""
    global _configured
    _configured = None
