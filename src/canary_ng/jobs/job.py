"""
Measurement job.

A job owns one probe and loops forever over a
connect / read and/or write / disconnect cycle, recording the duration of
each phase and counting queries, executions and failures.

A failed phase aborts the cycle without disconnecting. A failure counts as
one query and one job execution, so the query and job counters include
failures.
"""

import logging
import time
from typing import Dict, Optional

from canary_ng.monitoring.metrics import CanaryMetrics
from canary_ng.probes.base import Probe
from canary_ng.utils.config import (
    QUERY_TYPE_CONNECT,
    QUERY_TYPE_DISCONNECT,
    QUERY_TYPE_READ,
    QUERY_TYPE_READ_WRITE,
    QUERY_TYPE_WRITE,
    QueryLabelsConfig,
)
from canary_ng.utils.log_context import JobContext

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1  # seconds


class Job:
    """One independently scheduled probe with its labels and interval."""

    def __init__(
        self,
        name: str,
        probe: Probe,
        metrics: CanaryMetrics,
        labels: Dict[str, str],
        query_labels: QueryLabelsConfig,
        query_type: str,
        interval: int = DEFAULT_INTERVAL
    ):
        self.name = name
        self.probe = probe
        self.metrics = metrics
        self.labels = labels
        self.query_labels = query_labels
        self.query_type = query_type
        self.interval = interval or DEFAULT_INTERVAL
        self.start: Optional[float] = None

    def __repr__(self) -> str:
        return f"Job(name={self.name!r}, type={self.probe.name!r}, query_type={self.query_type!r})"

    def measure(self) -> None:
        """Run one measurement cycle."""
        logger.debug("starting to measure")

        self.start_measurement()
        try:
            self.probe.connect()
        except Exception as e:
            self.incr_failures()
            logger.warning(f"could not connect: {e}")
            return
        self.end_measurement(QUERY_TYPE_CONNECT)

        if self.query_type == QUERY_TYPE_READ:
            if not self._read():
                return

        elif self.query_type == QUERY_TYPE_WRITE:
            if not self._write():
                return

        elif self.query_type == QUERY_TYPE_READ_WRITE:
            if not self._read():
                return
            if not self._write():
                return

        else:
            self.incr_failures()
            logger.warning(f"invalid query type {self.query_type}")
            try:
                self.probe.disconnect()
            except Exception as e:
                logger.debug(f"ignoring disconnect error: {e}")
            return

        self.start_measurement()
        try:
            self.probe.disconnect()
        except Exception as e:
            logger.warning(f"could not disconnect: {e}")
            self.incr_failures()
            return
        self.end_measurement(QUERY_TYPE_DISCONNECT)
        self.incr_jobs()

    def _read(self) -> bool:
        self.start_measurement()
        try:
            self.probe.read()
        except Exception as e:
            self.incr_failures()
            logger.warning(f"could not read: {e}")
            return False
        self.end_measurement(QUERY_TYPE_READ)
        return True

    def _write(self) -> bool:
        self.start_measurement()
        try:
            self.probe.write()
        except Exception as e:
            self.incr_failures()
            logger.warning(f"could not write: {e}")
            return False
        self.end_measurement(QUERY_TYPE_WRITE)
        return True

    def incr_failures(self) -> None:
        """Count a failure, which is also a query and a job execution."""
        self.metrics.incr_failures(self.labels)
        self.incr_queries()
        self.incr_jobs()

    def incr_queries(self) -> None:
        self.metrics.incr_queries(self.labels)

    def incr_jobs(self) -> None:
        self.metrics.incr_jobs(self.labels)

    def observe_duration(self, query_type: str, duration: float) -> None:
        """
        Record the duration of a phase under its query label value.

        Unknown phases are logged and skipped.
        """
        values = {
            QUERY_TYPE_CONNECT: self.query_labels.connect_value,
            QUERY_TYPE_READ: self.query_labels.read_value,
            QUERY_TYPE_WRITE: self.query_labels.write_value,
            QUERY_TYPE_DISCONNECT: self.query_labels.disconnect_value,
        }
        if query_type not in values:
            logger.warning(f"invalid query type {query_type} in observation, skipping")
            return
        self.metrics.observe_duration(self.labels, values[query_type], duration)

    def start_measurement(self) -> None:
        self.start = time.monotonic()

    def end_measurement(self, query_type: str) -> None:
        duration = time.monotonic() - self.start
        self.observe_duration(query_type, duration)
        self.incr_queries()

    def run(self) -> None:
        """Measure, then sleep for the interval, forever."""
        with JobContext(self.name):
            logger.info("job started")
            while True:
                self.measure()
                logger.info("measurement performed")

                unit = "second" if self.interval == 1 else "seconds"
                logger.debug(f"waiting for {self.interval} {unit} before next measurement")
                time.sleep(self.interval)
