"""
Store Probes for canary-ng

One probe class per supported store type. The job type selects the class
once, at job construction.

Usage:
    from canary_ng.probes import create_probe

    probe = create_probe(job_config)
    probe.connect()
    probe.read()
    probe.disconnect()
"""

from typing import Dict, Type

from canary_ng.probes.base import DEFAULT_TIMEOUT, Probe
from canary_ng.probes.cassandra import CassandraProbe
from canary_ng.probes.clickhouse import ClickhouseProbe
from canary_ng.probes.mongodb import MongodbProbe
from canary_ng.probes.mysql import MysqlProbe
from canary_ng.probes.postgresql import PostgresqlProbe
from canary_ng.probes.valkey import ValkeyProbe
from canary_ng.utils.config import JobConfig
from canary_ng.utils.errors import UnsupportedStoreTypeError

PROBE_TYPES: Dict[str, Type[Probe]] = {
    probe.name: probe
    for probe in (
        CassandraProbe,
        ClickhouseProbe,
        MongodbProbe,
        MysqlProbe,
        PostgresqlProbe,
        ValkeyProbe,
    )
}


def create_probe(config: JobConfig) -> Probe:
    """
    Instantiate the probe matching the job type.

    Args:
        config: Job configuration, hosts already resolved

    Returns:
        Probe instance

    Raises:
        UnsupportedStoreTypeError: If the type is unknown
        ConfigError: If the probe rejects its options
    """
    probe_class = PROBE_TYPES.get(config.type)
    if probe_class is None:
        raise UnsupportedStoreTypeError(config.type)
    return probe_class(config)


__all__ = [
    "DEFAULT_TIMEOUT",
    "PROBE_TYPES",
    "Probe",
    "create_probe",
]
