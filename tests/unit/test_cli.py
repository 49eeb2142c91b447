"""
Unit tests for the command line entry point.
"""

import pytest
from unittest.mock import patch

from canary_ng.cli import build_parser, main, show_version

CONFIG = """
listen_addr: "127.0.0.1:9100"
log_level: {level}
jobs:
  - name: pg
    type: postgresql
    query_type: read
    hosts: [db1]
    table: canary
"""


@pytest.fixture
def config_file(tmp_path):
    def write(content=CONFIG.format(level="info")):
        path = tmp_path / "canary-ng.yaml"
        path.write_text(content)
        return str(path)
    return write


@pytest.fixture
def mock_runtime():
    """Patch logging setup, job threads and the HTTP server."""
    with patch("canary_ng.cli.setup_logging") as mock_setup, \
            patch("canary_ng.cli.start_jobs") as mock_start, \
            patch("canary_ng.cli.serve_metrics") as mock_serve:
        yield mock_setup, mock_start, mock_serve


class TestParser:
    """Test argument parsing."""

    def test_defaults(self):
        """Test default arguments."""
        args = build_parser().parse_args([])

        assert args.config == "canary-ng.yaml"
        assert not (args.quiet or args.verbose or args.debug or args.version)

    def test_flags(self):
        """Test short and long flags."""
        args = build_parser().parse_args(["--config", "other.yaml", "-v", "--debug", "--quiet"])

        assert args.config == "other.yaml"
        assert args.verbose and args.debug and args.quiet


class TestMain:
    """Test the main entry point."""

    def test_version(self, capsys):
        """Test --version prints the version and exits."""
        assert main(["--version"]) == 0

        assert show_version() in capsys.readouterr().out
        assert "canary-ng version" in show_version()

    def test_missing_config(self, tmp_path, capsys):
        """Test an unreadable configuration exits with 1."""
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1

        assert "could not create configuration" in capsys.readouterr().out

    def test_mistyped_config(self, config_file, mock_runtime, capsys):
        """Test a value of the wrong type exits with 1."""
        assert main(["--config", config_file(CONFIG.format(level="info") + "    labels: [a]\n")]) == 1

        assert "jobs[0].labels must be a mapping" in capsys.readouterr().out
        mock_runtime[2].assert_not_called()

    def test_invalid_log_level(self, config_file, mock_runtime):
        """Test an invalid log level exits with 1."""
        assert main(["--config", config_file(CONFIG.format(level="trace"))]) == 1

        mock_runtime[2].assert_not_called()

    def test_no_jobs(self, config_file, mock_runtime):
        """Test a configuration without jobs exits with 1."""
        assert main(["--config", config_file("log_level: info\n")]) == 1

        mock_runtime[2].assert_not_called()

    def test_run(self, config_file, mock_runtime):
        """Test jobs are started and metrics served."""
        mock_setup, mock_start, mock_serve = mock_runtime

        assert main(["--config", config_file(), "--quiet"]) == 0

        assert mock_setup.call_args[0] == (40, "text")
        jobs = mock_start.call_args[0][0]
        assert [j.name for j in jobs] == ["pg"]
        registry, listen_addr, route = mock_serve.call_args[0]
        assert (listen_addr, route) == ("127.0.0.1:9100", "/metrics")

    def test_serve_failure(self, config_file, mock_runtime):
        """Test a listener failure exits with 1."""
        mock_runtime[2].side_effect = OSError("Address already in use")

        assert main(["--config", config_file()]) == 1
