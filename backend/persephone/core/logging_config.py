"""
Logging setup for the Persephone backend.

Console output is colored and human-readable; the optional file handler
rotates and writes one JSON object per record. Structured context travels
in ``extra={"extra_fields": {...}}`` and is masked before it is written.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotating file: 10 MB per file, 5 backups
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

SENSITIVE_KEYS = ("password", "token", "secret", "authorization", "api_key", "api-key")
MASK = "***FILTERED***"

QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler", "uvicorn.access")


class ColoredFormatter(logging.Formatter):
    """Colors the level name on console output."""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        plain = record.levelname
        record.levelname = f"{color}{plain:8s}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = plain


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with masked ``extra_fields`` merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }
        context = getattr(record, "extra_fields", None)
        if context:
            entry.update(mask_sensitive(context))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: str, level: int, json_format: bool) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(config: Any) -> None:
    """
    Install the root handlers from settings.

    Args:
        config: Settings object exposing the ``log_*`` fields
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if config.log_console_enabled:
        root.addHandler(_console_handler(level))
    if config.log_file_enabled:
        root.addHandler(_file_handler(config.log_file_path, level, config.log_json_format))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Per-call token usage is logged at INFO by the providers
    if not config.log_llm_calls:
        logging.getLogger("persephone.llm").setLevel(logging.WARNING)

    root.info(
        f"Logging ready: level={logging.getLevelName(level)}, "
        f"console={config.log_console_enabled}, file={config.log_file_enabled}"
    )


class VisitorLoggerAdapter(logging.LoggerAdapter):
    """
    Stamps every record with visitor context.

    Usage:
        log = VisitorLoggerAdapter(logger, {"identity": "ip_1a2b3c"})
        log.info("Quota checked")  # extra_fields includes the identity
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.setdefault("extra", {})
        extra["extra_fields"] = {**self.extra, **extra.get("extra_fields", {})}
        return msg, kwargs


def mask_sensitive(data: Any, keys: tuple = SENSITIVE_KEYS) -> Any:
    """Replace values under credential-like keys, recursing into dicts and lists."""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if any(fragment in str(key).lower() for fragment in keys):
                masked[key] = MASK
            else:
                masked[key] = mask_sensitive(value, keys)
        return masked
    if isinstance(data, (list, tuple)):
        return [mask_sensitive(item, keys) for item in data]
    return data


def truncate(text: str, limit: int = 5000) -> str:
    """Cut ``text`` to ``limit`` characters, noting the original length."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... (truncated, total length: {len(text)})"
