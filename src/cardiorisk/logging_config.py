import json
import logging
from typing import Any, Dict

from .config import APP_NAME, LOG_LEVEL


# =================================================
# Structured JSON logging
# =================================================
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": APP_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def configure_logging(name: str = "cardiorisk") -> logging.Logger:
    """Attach the JSON handler to the package logger.

    Module loggers under ``cardiorisk.`` propagate here.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)
    logger.handlers = [handler]
    logger.propagate = False
    return logger
