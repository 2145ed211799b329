"""Structured JSON logging for keystore bootstrap runs."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "keystore_operations"
LOG_LEVEL_ENV = "KEYSTORE_LOG_LEVEL"
LOG_FIELDS = frozenset({"timestamp", "level", "message", "exc_info", "funcName", "lineno"})


class KeystoreJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that emits only LOG_FIELDS, reporting levelname as level."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        for key in set(log_record) - LOG_FIELDS:
            del log_record[key]


def configure_logger(level: str | None = None) -> logging.Logger:
    """Attach the JSON handler to the keystore_operations logger and set its level.

    The JSON handler is added once; later calls only change the level.
    Handlers attached by others (such as test capture handlers) are left alone.

    Args:
        level: Level name such as DEBUG. Falls back to $KEYSTORE_LOG_LEVEL, then INFO

    Returns:
        The configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h.formatter, KeystoreJsonFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            KeystoreJsonFormatter(
                "%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
                timestamp=True,
            )
        )
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel((level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper())
    return logger


LOGGER = configure_logger()
