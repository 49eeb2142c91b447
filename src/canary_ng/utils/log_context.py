"""
Job Context for Logging

Keeps the name of the job owning the current thread in a context variable so
every log record emitted while measuring can be attributed to its job.
"""

import contextvars
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_job_name: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'job_name',
    default=None
)


def get_job_name() -> Optional[str]:
    """
    Get the job name from the current context.

    Returns:
        Current job name or None if not set
    """
    return _job_name.get()


def set_job_name(name: str) -> None:
    """
    Set the job name in the current context.

    Args:
        name: Job name

    Raises:
        ValueError: If name is empty
    """
    if not name or not isinstance(name, str):
        raise ValueError("Job name must be a non-empty string")

    _job_name.set(name)
    logger.debug(f"Set job name: {name}")


def clear_job_name() -> None:
    """Clear the job name from context."""
    _job_name.set(None)


class JobContext:
    """
    Context manager binding a job name to the current context.

    Restores the previous job name on exit.
    """

    def __init__(self, name: str):
        self.name = name
        self.previous_name = None

    def __enter__(self) -> str:
        self.previous_name = get_job_name()
        set_job_name(self.name)
        return self.name

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_name:
            set_job_name(self.previous_name)
            logger.debug(f"Restored job name: {self.previous_name}")
        else:
            clear_job_name()
            logger.debug("Cleared job context")


def job_name_filter(record):
    """
    Logging filter adding the job name to log records.

    Args:
        record: Log record to augment

    Returns:
        True (always allow record)
    """
    record.job = get_job_name() or "-"
    return True
