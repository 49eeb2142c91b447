"""
Monitoring Module for canary-ng

Prometheus metrics recorded by measurement jobs and the HTTP endpoint
exposing them.

Usage:
    from prometheus_client import CollectorRegistry
    from canary_ng.monitoring import CanaryMetrics, serve_metrics

    registry = CollectorRegistry()
    metrics = CanaryMetrics(registry, config)
    serve_metrics(registry, config.listen_addr, config.route)
"""

from canary_ng.monitoring.metrics import CanaryMetrics, collect_label_names
from canary_ng.monitoring.server import serve_metrics

__all__ = [
    "CanaryMetrics",
    "collect_label_names",
    "serve_metrics",
]
