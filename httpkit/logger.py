import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Dict, Iterable, List, Optional, Union

# ANSI color codes
COLOR_CODES = {
    "DEBUG": "\033[36m",     # Cyan
    "INFO": "\033[32m",      # Green
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[41m",  # Red background
    "RESET": "\033[0m",
}

# Request and session fields handlers may pass through ``extra=``
CONTEXT_FIELDS = ("request_id", "session_id", "client_ip")

# Every httpkit module logs below this name
PACKAGE_LOGGER = "httpkit"


def _record_context(record: logging.LogRecord, show_environment: bool) -> Dict[str, str]:
    context = {}
    for field in CONTEXT_FIELDS:
        if hasattr(record, field):
            context[field] = getattr(record, field)
    if show_environment and hasattr(record, "environment"):
        context["environment"] = record.environment
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request/session context under ``context``."""

    def __init__(self, default_context: Optional[Dict[str, str]] = None, show_environment: bool = True):
        super().__init__()
        self.default_context = default_context or {}
        self.show_environment = show_environment

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        context = {**self.default_context, **_record_context(record, self.show_environment)}
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


class TextFormatter(logging.Formatter):
    """``<time> <LEVEL> [<logger>] <message> key=value ...`` lines."""

    def __init__(self, default_context: Optional[Dict[str, str]] = None, show_environment: bool = False, colored: bool = True):
        super().__init__(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.default_context = default_context or {}
        self.show_environment = show_environment
        self.colored = colored

    def format(self, record):
        levelname = record.levelname
        if self.colored and levelname in COLOR_CODES:
            record.levelname = f"\u001b[1m{COLOR_CODES[levelname]}{levelname}{COLOR_CODES['RESET']}\u001b[0m"
        try:
            line = super().format(record)
        finally:
            # other handlers share the record
            record.levelname = levelname

        context = _record_context(record, self.show_environment)
        if "environment" in context:
            context["env"] = context.pop("environment")
        context.update(self.default_context)

        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


class EnvironmentLoggerAdapter(logging.LoggerAdapter):
    """Adds the deployment ``environment`` to every record, keeping the caller's extras."""

    def __init__(self, logger: logging.Logger, environment: str):
        super().__init__(logger, {"environment": environment})

    def process(self, msg, kwargs):
        kwargs["extra"] = {**kwargs.get("extra", {}), "environment": self.extra["environment"]}
        return msg, kwargs


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_logs: bool = False,
    log_file: Optional[str] = None,
    to_console: bool = True,
    environment: str = "production",
    default_context: Optional[Dict[str, str]] = None,
    show_environment: bool = False,
    colored_console: bool = True,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
    loggers: Iterable[str] = (PACKAGE_LOGGER,),
) -> EnvironmentLoggerAdapter:
    """
    Attach handlers to the httpkit loggers and return an adapter for the first.

    Modules under ``httpkit`` log through ``logging.getLogger(__name__)``, so
    configuring the package logger covers requests, uploads and sessions.
    Pass extra names in ``loggers`` (``"uvicorn"`` for instance) to share the
    same output. Calling it again replaces the handlers instead of adding more.

    Example:
        log = configure_logging("DEBUG", json_logs=True, environment="staging")
        app = HttpKit(handler, log=log)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers: List[logging.Handler] = []
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        # no ANSI escapes in files
        file_handler.setFormatter(
            JSONFormatter(default_context, show_environment)
            if json_logs
            else TextFormatter(default_context, show_environment, colored=False)
        )
        handlers.append(file_handler)

    if to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            JSONFormatter(default_context, show_environment)
            if json_logs
            else TextFormatter(default_context, show_environment, colored_console)
        )
        handlers.append(console_handler)

    names = list(loggers) or [PACKAGE_LOGGER]
    for name in names:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            logger.addHandler(handler)

    return EnvironmentLoggerAdapter(logging.getLogger(names[0]), environment)
