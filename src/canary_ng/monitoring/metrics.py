"""
Prometheus Metrics for canary-ng

Duration histogram and query/job/failure counters shared by every job.
prometheus_client metrics are internally locked, so jobs record from their
own threads without coordinating.
"""

import logging
from typing import Dict, Iterable, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram

from canary_ng.utils.config import Config
from canary_ng.utils.errors import ConfigError

logger = logging.getLogger(__name__)


def collect_label_names(config: Config) -> List[str]:
    """
    Compute the label names shared by every metric.

    Prometheus vectors have a fixed set of label names, so user labels of all
    jobs are merged. The job label comes first, user labels follow sorted.

    Args:
        config: Global configuration

    Returns:
        Ordered label names
    """
    user_labels = set()
    for job in config.jobs:
        user_labels.update(job.labels.keys())
    user_labels.discard(config.job_label_name)
    return [config.job_label_name] + sorted(user_labels)


class CanaryMetrics:
    """
    Metrics sink for measurement jobs.

    Built once at startup and passed to every job.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        config: Config,
        label_names: Optional[Iterable[str]] = None
    ):
        """
        Initialize and register metrics.

        Args:
            registry: Registry exposed by the HTTP endpoint
            config: Global configuration (metric names, labels, buckets)
            label_names: Label names of every metric (computed from config
                when omitted)

        Raises:
            ConfigError: If the job label name is empty or a user label
                collides with the query label
        """
        if not config.job_label_name:
            raise ConfigError("missing job label name")

        self.registry = registry
        self.label_names = list(label_names) if label_names is not None else collect_label_names(config)
        self.query_label_name = config.query_labels.name

        if self.query_label_name in self.label_names:
            raise ConfigError(f"label {self.query_label_name} is reserved for query types")

        self.duration = Histogram(
            config.duration_metric,
            'Execution time of the job',
            labelnames=self.label_names + [self.query_label_name],
            buckets=config.buckets,
            registry=registry
        )

        self.failures = Counter(
            config.failures_metric,
            'Number of execution that has failed',
            labelnames=self.label_names,
            registry=registry
        )

        self.jobs = Counter(
            config.jobs_metric,
            'Total number of job executions including failures',
            labelnames=self.label_names,
            registry=registry
        )

        self.queries = Counter(
            config.queries_metric,
            'Total number of queries executions including failures',
            labelnames=self.label_names,
            registry=registry
        )

        logger.info(f"CanaryMetrics initialized with labels {self.label_names}")

    def _label_values(self, labels: Dict[str, str]) -> Dict[str, str]:
        """Project a job label set onto the registered label names."""
        return {name: labels.get(name, "") for name in self.label_names}

    def incr_failures(self, labels: Dict[str, str]) -> None:
        """Increment the failure counter."""
        self.failures.labels(**self._label_values(labels)).inc()

    def incr_queries(self, labels: Dict[str, str]) -> None:
        """Increment the query counter."""
        self.queries.labels(**self._label_values(labels)).inc()

    def incr_jobs(self, labels: Dict[str, str]) -> None:
        """Increment the job counter."""
        self.jobs.labels(**self._label_values(labels)).inc()

    def observe_duration(self, labels: Dict[str, str], query_value: str, duration: float) -> None:
        """
        Record a duration.

        Args:
            labels: Job label set
            query_value: Value of the query label
            duration: Duration in seconds
        """
        values = self._label_values(labels)
        values[self.query_label_name] = query_value
        self.duration.labels(**values).observe(duration)
