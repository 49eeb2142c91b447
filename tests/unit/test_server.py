"""
Unit tests for the metrics HTTP endpoint.
"""

import pytest
from prometheus_client import CollectorRegistry, Counter
from unittest.mock import patch
from wsgiref.util import setup_testing_defaults

from canary_ng.monitoring.server import make_metrics_app, parse_listen_addr, serve_metrics


def call_app(app, path):
    """Call a WSGI app and return (status, body)."""
    environ = {"PATH_INFO": path}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = headers

    body = b"".join(app(environ, start_response))
    return captured["status"], body


@pytest.fixture
def registry():
    registry = CollectorRegistry()
    counter = Counter("canary_ng_jobs", "Total number of job executions", ["job_name"], registry=registry)
    counter.labels(job_name="ping").inc()
    return registry


class TestParseListenAddr:
    """Test listen address parsing."""

    @pytest.mark.parametrize("addr, expected", [
        (":8080", ("", 8080)),
        ("127.0.0.1:9090", ("127.0.0.1", 9090)),
        ("[::1]:8080", ("::1", 8080)),
        ("localhost:80", ("localhost", 80)),
    ])
    def test_valid(self, addr, expected):
        """Test valid listen addresses."""
        assert parse_listen_addr(addr) == expected

    @pytest.mark.parametrize("addr", ["8080", "localhost", "host:http", ""])
    def test_invalid(self, addr):
        """Test invalid listen addresses."""
        with pytest.raises(ValueError):
            parse_listen_addr(addr)


class TestMetricsApp:
    """Test the WSGI application."""

    def test_metrics_route(self, registry):
        """Test the registry is exposed on the configured route."""
        status, body = call_app(make_metrics_app(registry, "/metrics"), "/metrics")

        assert status.startswith("200")
        assert b'canary_ng_jobs_total{job_name="ping"} 1.0' in body

    def test_custom_route(self, registry):
        """Test a custom route replaces /metrics."""
        app = make_metrics_app(registry, "/probe")

        assert call_app(app, "/probe")[0].startswith("200")
        assert call_app(app, "/metrics")[0].startswith("404")

    def test_unknown_path(self, registry):
        """Test other paths return 404."""
        status, body = call_app(make_metrics_app(registry, "/metrics"), "/")

        assert status.startswith("404")
        assert body == b"404 page not found\n"


class TestServeMetrics:
    """Test server startup."""

    @patch("canary_ng.monitoring.server.make_server")
    def test_serve(self, mock_make_server, registry):
        """Test the server binds the parsed address and serves forever."""
        serve_metrics(registry, "127.0.0.1:9100", "/metrics")

        args = mock_make_server.call_args[0]
        assert args[:2] == ("127.0.0.1", 9100)
        mock_make_server.return_value.serve_forever.assert_called_once()

    @patch("canary_ng.monitoring.server.make_server")
    def test_bind_error(self, mock_make_server, registry):
        """Test bind errors propagate."""
        mock_make_server.side_effect = OSError("Address already in use")

        with pytest.raises(OSError):
            serve_metrics(registry, ":8080", "/metrics")

    def test_invalid_address(self, registry):
        """Test invalid addresses fail before binding."""
        with pytest.raises(ValueError):
            serve_metrics(registry, "nowhere", "/metrics")
