"""
Measurement Jobs for canary-ng

Expansion of job configurations into jobs, the measurement loop and the
threads running it.

Usage:
    from canary_ng.jobs import create_jobs, start_jobs

    jobs = create_jobs(config, metrics)
    start_jobs(jobs)
"""

from canary_ng.jobs.builder import add_host_prefix, build_job, build_jobs
from canary_ng.jobs.job import Job
from canary_ng.jobs.scheduler import create_jobs, start_jobs

__all__ = [
    "Job",
    "add_host_prefix",
    "build_job",
    "build_jobs",
    "create_jobs",
    "start_jobs",
]
