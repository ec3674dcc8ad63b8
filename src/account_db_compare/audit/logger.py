"""
Structured logger for the account comparison tool.

Wraps structlog so components can log with the same call shape whether the
output is human-readable text or JSON lines. Logs are written to stderr (or
a log file) so the report on stdout stays clean.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from account_db_compare.config.models import LoggingConfig


class CompareLogger:
    """Logger facade used throughout the comparison tool."""

    def __init__(self, name: str = "account_db_compare", logging_config: Optional[LoggingConfig] = None):
        """
        Initialize the logger.

        Args:
            name: Logger name, bound to every event
            logging_config: Optional logging configuration to apply immediately
        """
        self.name = name
        self._log_file = None
        self._logger = structlog.get_logger(name)
        if logging_config is not None:
            self.setup_logging(logging_config)
        elif not structlog.is_configured():
            # structlog's own default prints to stdout
            self.setup_logging(LoggingConfig())

    def setup_logging(self, logging_config: LoggingConfig) -> None:
        """
        Configure structlog rendering, level filtering and destination.

        Args:
            logging_config: Logging configuration
        """
        level = getattr(logging, logging_config.level, logging.INFO)

        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ]
        if logging_config.format == "json":
            processors.append(structlog.processors.dict_tracebacks)
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        stream = sys.stderr
        if logging_config.log_to_file and logging_config.log_file_path:
            log_path = Path(logging_config.log_file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self.close()
            self._log_file = open(log_path, "a", encoding="utf-8")
            stream = self._log_file

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(level),
            logger_factory=structlog.PrintLoggerFactory(file=stream),
            cache_logger_on_first_use=False,
        )
        self._logger = structlog.get_logger(self.name).bind(logger=self.name)

    def close(self) -> None:
        """Close the log file, if one was opened."""
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None

    def _log(
        self,
        method: str,
        msg: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        event = dict(extra or {})
        event.update(kwargs)
        if exc_info:
            event["exc_info"] = True
        getattr(self._logger, method)(msg, **event)

    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._log("debug", msg, extra, **kwargs)

    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._log("info", msg, extra, **kwargs)

    def warning(self, msg: str, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._log("warning", msg, extra, **kwargs)

    def error(self, msg: str, extra: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._log("error", msg, extra, **kwargs)
