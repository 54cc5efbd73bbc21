"""
Structured Logging Setup

Every component logs through a child of the "meterpoll" logger, which
owns the only handler. Output is one JSON object per line by default,
or plain text for interactive use.

Environment overrides:
    METERPOLL_LOG_LEVEL   DEBUG, INFO, WARNING, ERROR (default INFO)
    METERPOLL_LOG_FORMAT  json or text (default json)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "meterpoll"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "service", "taskName",
}

LoggerLike = logging.Logger | logging.LoggerAdapter


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update((k, v) for k, v in vars(record).items() if k not in _RECORD_ATTRS)
        return json.dumps(entry, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with the component that emitted it"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.setdefault("extra", {})
        extra["service"] = self.extra["service"]
        return msg, kwargs


def _env_json_format() -> bool:
    return os.environ.get("METERPOLL_LOG_FORMAT", "json").lower() == "json"


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    (Re)configure the meterpoll logger tree.

    Args:
        log_level: Logging level name, unknown names fall back to INFO
        json_format: JSON lines (True) or human readable text (False)

    Returns:
        The "meterpoll" parent logger
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.handlers.clear()
    root.addHandler(handler)
    # Keep poller output out of whatever the host application logs
    root.propagate = False
    return root


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Logger adapter for one component, e.g. "query.engine".

    The first call configures the tree from the environment.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        setup_logging(os.environ.get("METERPOLL_LOG_LEVEL", "INFO"), _env_json_format())
    return ServiceLoggerAdapter(root.getChild(service_name), {"service": service_name})


def configure_levels(log_level: str, json_format: bool | None = None) -> None:
    """Apply CLI or config file settings to every component logger"""
    if json_format is None:
        json_format = _env_json_format()
    setup_logging(log_level, json_format)


def log_operation_read(
    logger: LoggerLike,
    meter: str,
    measurement: str,
    address: int,
    value: Any,
) -> None:
    """Debug record for one decoded register read"""
    logger.debug(
        f"Read {meter}.{measurement} @0x{address:04X} = {value}",
        extra={"meter": meter, "measurement": measurement, "address": address, "value": value},
    )


def log_reading(logger: LoggerLike, reading: dict[str, Any]) -> None:
    """Info record for a published reading, as produced by Reading.to_dict()"""
    logger.info(
        f"Reading {reading['meter']}: {len(reading['values'])} values",
        extra={"meter": reading["meter"], "reading": reading},
    )
