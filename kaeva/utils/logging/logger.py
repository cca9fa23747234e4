"""
Logging framework for Kaeva.

This module provides:
1. Structured JSON logging (python-json-logger) or plain text output
2. Component-specific loggers under the ``kaeva`` namespace
3. Request/job context carried across async boundaries
4. Log rotation for file output
5. Performance timing of pipeline stages
6. Masking of bearer tokens, API keys and private keys
"""

import logging
import os
import re
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any, Dict, Optional, Union

from pythonjsonlogger.json import JsonFormatter

DEFAULT_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s %(job_id)s"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

SENSITIVE_PATTERNS = [
    re.compile(r'(["\'](?:api[_-]?key|token|access_token|secret|private_key)["\']:\s*["\']).+?(["\'])', re.IGNORECASE),
    re.compile(r"(bearer\s+)(\S+)()", re.IGNORECASE),
    re.compile(r"(api[_-]?key[=:]\s*)(\S+)()", re.IGNORECASE),
    re.compile(r"(-----BEGIN [A-Z ]*PRIVATE KEY-----)[\s\S]+?(-----END [A-Z ]*PRIVATE KEY-----)", re.IGNORECASE),
]

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
job_id_var: ContextVar[str] = ContextVar("job_id", default="")

_LOGGERS: Dict[str, logging.Logger] = {}


class SensitiveFilter(logging.Filter):
    """Filter to remove credentials from log messages."""

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        message = record.msg
        for pattern in SENSITIVE_PATTERNS:
            if pattern.groups == 2:
                message = pattern.sub(r"\1*****\2", message)
            else:
                message = pattern.sub(r"\1*****\3", message)
        record.msg = message
        return True


class ContextFilter(logging.Filter):
    """Filter that adds request and job ids to log records."""

    def filter(self, record):
        record.request_id = request_id_var.get("")
        record.job_id = job_id_var.get("")
        return True


class LogManager:
    """Central manager for logging configuration and retrieval."""

    def __init__(self):
        self.configured = False
        self.default_config = {
            "level": os.getenv("LOG_LEVEL", "info"),
            "json_logging": os.getenv("LOG_FORMAT", "json").lower() == "json",
            "log_file": os.getenv("LOG_FILE"),
            "rotation_size": int(os.getenv("LOG_ROTATION_SIZE", "10485760")),
            "rotation_count": int(os.getenv("LOG_ROTATION_COUNT", "5")),
            "daily_rotation": os.getenv("LOG_DAILY_ROTATION", "false").lower() == "true",
        }

    def configure(
        self,
        level: Optional[Union[str, int]] = None,
        json_logging: Optional[bool] = None,
        log_file: Optional[str] = None,
        rotation_size: Optional[int] = None,
        rotation_count: Optional[int] = None,
        daily_rotation: Optional[bool] = None,
    ) -> None:
        """
        Configure the root logger.

        Args:
            level: Log level (debug, info, warning, error, critical)
            json_logging: Whether to use JSON-formatted logs
            log_file: Path to log file
            rotation_size: Maximum size of each log file in bytes
            rotation_count: Number of backup log files to keep
            daily_rotation: Whether to rotate logs daily instead of by size
        """
        overrides = {
            "level": level,
            "json_logging": json_logging,
            "log_file": log_file,
            "rotation_size": rotation_size,
            "rotation_count": rotation_count,
            "daily_rotation": daily_rotation,
        }
        for key, value in overrides.items():
            if value is not None:
                self.default_config[key] = value

        root_logger = logging.getLogger()

        if isinstance(self.default_config["level"], str):
            level_value = LOG_LEVELS.get(self.default_config["level"].lower(), logging.INFO)
        else:
            level_value = self.default_config["level"]
        root_logger.setLevel(level_value)

        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)

        if self.default_config["json_logging"]:
            formatter = JsonFormatter(DEFAULT_JSON_FORMAT)
        else:
            formatter = logging.Formatter(DEFAULT_TEXT_FORMAT)

        sensitive_filter = SensitiveFilter()
        context_filter = ContextFilter()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(sensitive_filter)
        console_handler.addFilter(context_filter)
        root_logger.addHandler(console_handler)

        if self.default_config["log_file"]:
            log_dir = os.path.dirname(self.default_config["log_file"])
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            if self.default_config["daily_rotation"]:
                file_handler = TimedRotatingFileHandler(
                    self.default_config["log_file"],
                    when="midnight",
                    backupCount=self.default_config["rotation_count"],
                )
            else:
                file_handler = RotatingFileHandler(
                    self.default_config["log_file"],
                    maxBytes=self.default_config["rotation_size"],
                    backupCount=self.default_config["rotation_count"],
                )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(sensitive_filter)
            file_handler.addFilter(context_filter)
            root_logger.addHandler(file_handler)

        self.configured = True

    def get_logger(self, name: str = "kaeva") -> logging.Logger:
        if name not in _LOGGERS:
            _LOGGERS[name] = logging.getLogger(name)
        return _LOGGERS[name]

    def get_component_logger(self, component: str) -> logging.Logger:
        """Get the logger for a component, e.g. ``media_analyzer``."""
        return self.get_logger(f"kaeva.{component}")

    @contextmanager
    def job_context(self, job_id: str):
        """Bind a job id to every record logged inside the block."""
        token = job_id_var.set(job_id)
        try:
            yield job_id
        finally:
            job_id_var.reset(token)

    @contextmanager
    def performance_timer(
        self,
        operation: str,
        logger: Optional[logging.Logger] = None,
        log_level: str = "debug",
        **kwargs: Any,
    ):
        """
        Context manager for timing and logging operation performance.

        Args:
            operation: Name of the operation being timed
            logger: Logger to use (uses default if not provided)
            log_level: Level to log the timing information
            **kwargs: Additional fields to include in the log record

        Yields:
            A timer object whose ``elapsed`` is set on exit
        """
        logger = logger or self.get_logger()
        level = LOG_LEVELS.get(log_level.lower(), logging.DEBUG)
        timer = _Timer()
        start_time = time.perf_counter()
        try:
            yield timer
        finally:
            timer.elapsed = time.perf_counter() - start_time
            logger.log(
                level,
                "%s completed in %.3fs",
                operation,
                timer.elapsed,
                extra={"operation": operation, "elapsed_s": timer.elapsed, **kwargs},
            )


class _Timer:
    elapsed: float = 0.0


log_manager = LogManager()

configure_logging = log_manager.configure
get_logger = log_manager.get_logger
get_component_logger = log_manager.get_component_logger
job_context = log_manager.job_context
performance_timer = log_manager.performance_timer
