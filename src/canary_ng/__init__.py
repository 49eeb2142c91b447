"""
canary-ng

Synthetic monitoring agent measuring availability and latency of data
stores (PostgreSQL, MySQL, MongoDB, Valkey, ClickHouse, Cassandra) and
exposing the results as Prometheus metrics.
"""

APP_NAME = "canary-ng"

__version__ = "1.0.0"
