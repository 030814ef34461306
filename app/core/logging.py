"""Process-wide logging configuration."""

import logging
import sys

from pythonjsonlogger import jsonlogger

from app.core.config import Settings


class PlanJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always carries level and logger name."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def setup_logging(settings: Settings) -> logging.Logger:
    """Attach a single stdout handler to the ``app`` logger tree."""
    logger = logging.getLogger("app")
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT.lower() == "json":
        formatter = PlanJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", timestamp=True)
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
