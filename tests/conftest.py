"""
Pytest configuration and shared fixtures.

Provides a fresh metrics registry per test and a scripted in-memory probe so
jobs can be exercised without any data store.
"""

import pytest
from prometheus_client import CollectorRegistry

from canary_ng.monitoring.metrics import CanaryMetrics
from canary_ng.probes.base import Probe
from canary_ng.utils.config import Config, JobConfig, QueryLabelsConfig
from canary_ng.utils.errors import ProbeOperationError


class FakeProbe(Probe):
    """Probe recording its calls and failing on the requested operations."""

    name = "fake"

    def __init__(self, config=None, fail_on=()):
        super().__init__(config or JobConfig(name="fake", type="fake"))
        self.fail_on = set(fail_on)
        self.calls = []

    def _call(self, operation):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise ProbeOperationError(operation, "scripted failure")

    def connect(self):
        self._call("connect")

    def read(self):
        self._call("read")

    def write(self):
        self._call("write")

    def disconnect(self):
        self._call("disconnect")


@pytest.fixture
def registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def config():
    """Global configuration with default metric and label names."""
    return Config(jobs=[JobConfig(name="ping", type="postgresql", query_type="read", labels={"team": "storage"})])


@pytest.fixture
def metrics(registry, config):
    """Metrics sink bound to the isolated registry."""
    return CanaryMetrics(registry, config)


@pytest.fixture
def query_labels():
    return QueryLabelsConfig()


@pytest.fixture
def fake_probe_factory():
    """Build FakeProbe instances failing on the given operations."""
    def factory(*fail_on):
        return FakeProbe(fail_on=fail_on)
    return factory


@pytest.fixture
def sample(registry):
    """Read a sample value from the isolated registry, 0.0 when absent."""
    def read(name, **labels):
        value = registry.get_sample_value(name, labels)
        return value if value is not None else 0.0
    return read
