"""
Custom logging configuration that keeps credentials out of the logs
"""

import logging
import logging.config
import re
from typing import Any, Dict

BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.=]+", re.IGNORECASE)
PASSWORD_PATTERN = re.compile(r"(['\"]?password['\"]?\s*[:=]\s*)(['\"]?)[^'\",\s}]+\2", re.IGNORECASE)


class SensitiveDataFilter(logging.Filter):
    """Filter masking bearer tokens and password values in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite the record message with secrets masked."""
        message = record.getMessage()
        masked = BEARER_PATTERN.sub(r"\1***", message)
        masked = PASSWORD_PATTERN.sub(r"\1\2***\2", masked)
        if masked != message:
            record.msg = masked
            record.args = None
        return True  # Never drop a record


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with secret masking."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "sensitive_data_filter": {
                "()": SensitiveDataFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["sensitive_data_filter"]
            }
        },
        "loggers": {
            "simpleql": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the SimpleQL logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
