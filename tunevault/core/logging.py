import logging
import sys
import json
from datetime import datetime, timezone
from typing import Optional
from tunevault.core.config import settings, Settings

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Chatty client libraries only surface problems
_THIRD_PARTY_LEVELS = {
    "uvicorn.access": logging.INFO,
    "uvicorn.error": logging.INFO,
    "botocore": logging.WARNING,
    "boto3": logging.WARNING,
    "s3transfer": logging.WARNING,
    "urllib3": logging.WARNING,
    "httpx": logging.WARNING,
    "musicbrainzngs": logging.WARNING,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per log line, including ``extra=`` fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(config: Optional[Settings] = None) -> None:
    """Route all logging to stdout as JSON; DEBUG level when the app runs in debug mode"""
    config = config or settings
    log_level = logging.DEBUG if config.DEBUG else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name, level in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    root_logger.info(
        "Application logging configured",
        extra={
            "environment": config.ENVIRONMENT,
            "debug": config.DEBUG,
            "log_level": logging.getLevelName(log_level),
            "third_party_loggers": {name: logging.getLevelName(level) for name, level in _THIRD_PARTY_LEVELS.items()},
        }
    )
