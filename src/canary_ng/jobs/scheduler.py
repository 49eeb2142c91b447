"""
Job scheduling.

Each job runs in its own daemon thread. Threads are never joined: jobs run
until the process exits. A slow store only delays its own job.
"""

import logging
import threading
from typing import List

from canary_ng.jobs.builder import build_jobs
from canary_ng.jobs.job import Job
from canary_ng.monitoring.metrics import CanaryMetrics
from canary_ng.utils.config import Config
from canary_ng.utils.errors import CanaryError

logger = logging.getLogger(__name__)


def create_jobs(config: Config, metrics: CanaryMetrics) -> List[Job]:
    """
    Build the jobs of every job configuration.

    A configuration that cannot be built is logged and skipped; the others
    are still returned.

    Args:
        config: Global configuration
        metrics: Shared metrics sink

    Returns:
        All jobs built successfully
    """
    jobs = []
    for job_config in config.jobs:
        try:
            jobs.extend(build_jobs(job_config, metrics, config.query_labels, config.job_label_name))
        except CanaryError as e:
            logger.error(f"could not create job {job_config.name}: {e}")
    return jobs


def start_job(job: Job) -> threading.Thread:
    """Start a job in a daemon thread."""
    thread = threading.Thread(target=job.run, name=f"job-{job.name}", daemon=True)
    thread.start()
    return thread


def start_jobs(jobs: List[Job]) -> List[threading.Thread]:
    """
    Start every job.

    Returns:
        Started threads
    """
    threads = [start_job(job) for job in jobs]
    logger.info(f"started {len(threads)} jobs")
    return threads
