"""
Unit tests for job creation and scheduling.
"""

from unittest.mock import MagicMock, patch

from canary_ng.jobs.scheduler import create_jobs, start_job, start_jobs
from canary_ng.utils.config import Config, JobConfig


class TestCreateJobs:
    """Test building every configured job."""

    def test_invalid_job_is_skipped(self, metrics):
        """Test a failing configuration does not prevent the others."""
        config = Config(jobs=[
            JobConfig(name="bad", type="oracle", query_type="read", hosts=["a"]),
            JobConfig(name="pg", type="postgresql", query_type="read", hosts=["a", "b"], table="canary", job_per_host=True),
            JobConfig(name="orphan", type="postgresql", query_type="read", table="canary"),
        ])

        with patch("canary_ng.jobs.scheduler.logger") as mock_logger:
            jobs = create_jobs(config, metrics)

        assert [j.name for j in jobs] == ["pg", "pg"]
        assert mock_logger.error.call_count == 2
        assert "could not create job bad" in mock_logger.error.call_args_list[0][0][0]

    def test_no_jobs(self, metrics):
        """Test an empty configuration gives no job."""
        assert create_jobs(Config(), metrics) == []


class TestStartJobs:
    """Test thread startup."""

    def test_start_job_runs_in_daemon_thread(self):
        """Test each job runs in a named daemon thread."""
        job = MagicMock()
        job.name = "ping"

        thread = start_job(job)
        thread.join(timeout=1)

        assert thread.daemon is True
        assert thread.name == "job-ping"
        job.run.assert_called_once()

    def test_start_jobs(self):
        """Test one thread is started per job."""
        jobs = [MagicMock(), MagicMock()]
        for i, job in enumerate(jobs):
            job.name = f"job{i}"

        threads = start_jobs(jobs)
        for thread in threads:
            thread.join(timeout=1)

        assert len(threads) == 2
        for job in jobs:
            job.run.assert_called_once()
