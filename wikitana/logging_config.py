"""Logging setup shared by the API and the CLI.

Records are written one JSON object per line.  Article titles routinely carry
quotes and non-ASCII characters, so the record is serialised with ``json``
rather than interpolated into a JSON-looking format string.
"""

import json
import logging
import logging.config

# Libraries that log every request at INFO; a crawl issues one per page.
NOISY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def logging_config(level: str = "INFO", stream: str = "ext://sys.stderr") -> dict:
    """dictConfig writing JSON lines to *stream* at *level*.

    Request logging of the HTTP client is only kept at ``DEBUG``.
    """
    level = level.upper()
    library_level = "DEBUG" if level == "DEBUG" else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": stream,
            },
        },
        "loggers": {name: {"level": library_level} for name in NOISY_LOGGERS},
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(logging_config(level))
