"""
Logging setup for canary-ng.

Configures the root logger with either a human-readable console format or
one JSON document per line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from canary_ng.utils.config import VALID_LOG_FORMATS
from canary_ng.utils.errors import ConfigError
from canary_ng.utils.log_context import job_name_filter

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = '[%(asctime)s] %(levelname)s - [%(job)s] %(message)s'
TEXT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter carrying the job name of the emitting thread."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        job = getattr(record, 'job', None)
        if job and job != "-":
            log_data['job'] = job
        if hasattr(record, 'driver'):
            log_data['driver'] = record.driver

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def parse_log_level(
    level: str,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False
) -> int:
    """
    Resolve the effective log level.

    Command line flags override the configured level, quiet winning over
    verbose and verbose over debug.

    Args:
        level: Configured level name (debug, info, warn, error)
        debug: --debug flag
        verbose: --verbose flag
        quiet: --quiet flag

    Returns:
        logging level number

    Raises:
        ConfigError: If the configured level is unknown
    """
    if level not in LOG_LEVELS:
        raise ConfigError(f"invalid log level {level}")

    log_level = LOG_LEVELS[level]
    if debug:
        log_level = logging.DEBUG
    if verbose:
        log_level = logging.INFO
    if quiet:
        log_level = logging.ERROR
    return log_level


def setup_logging(level: int, log_format: str, stream: Optional[object] = None) -> logging.Handler:
    """
    Install a single handler on the root logger.

    Args:
        level: Effective log level
        log_format: "text" or "json"
        stream: Output stream (defaults to stdout)

    Returns:
        The installed handler

    Raises:
        ConfigError: If the format is unknown
    """
    if log_format not in VALID_LOG_FORMATS:
        raise ConfigError(f"invalid log format {log_format}")

    handler = logging.StreamHandler(stream or sys.stdout)
    if log_format == "json":
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT))
    handler.addFilter(job_name_filter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    return handler
