"""
Exception hierarchy for canary-ng.

Construction-time errors (configuration, discovery, unsupported types) abort
the affected job only. ProbeOperationError is raised at runtime by probes and
recorded as a failed measurement.
"""


class CanaryError(Exception):
    """Base class for all canary-ng errors."""

    pass


class ConfigError(CanaryError):
    """Missing or invalid configuration."""

    pass


class MissingTargetError(ConfigError):
    """Job defines neither host, hosts, hosts_discovery nor dsn."""

    def __init__(self, job_name: str):
        super().__init__(f"host, hosts, hosts_discovery or dsn required for job {job_name}")
        self.job_name = job_name


class MissingLabelNameError(ConfigError):
    """The job label name is empty."""

    def __init__(self):
        super().__init__("missing job label name")


class MultipleHostsUnsupportedError(ConfigError):
    """Store type accepts a single host but several were given."""

    def __init__(self, store_type: str, hosts):
        super().__init__(f"multiple hosts detected for {store_type}: {', '.join(hosts)}")
        self.store_type = store_type
        self.hosts = list(hosts)


class UnsupportedStoreTypeError(ConfigError):
    """Unknown job type."""

    def __init__(self, store_type: str):
        super().__init__(f"unsupported job type {store_type}")
        self.store_type = store_type


class HostResolutionError(ConfigError):
    """A hostname could not be resolved while caching hostnames."""

    def __init__(self, host: str, reason: str):
        super().__init__(f"could not resolve {host}: {reason}")
        self.host = host


class DiscoveryError(CanaryError):
    """Host discovery backend failure."""

    pass


class NoHostsFoundError(DiscoveryError):
    """Discovery succeeded but returned no host."""

    def __init__(self):
        super().__init__("0 host found by discovery")


class UnsupportedDiscoveryTypeError(DiscoveryError):
    """Unknown discovery type."""

    def __init__(self, discovery_type: str):
        super().__init__(f"unsupported discovery type {discovery_type}")
        self.discovery_type = discovery_type


class ProbeOperationError(CanaryError):
    """A connect, read, write or disconnect operation failed."""

    def __init__(self, operation: str, reason):
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation
        self.reason = reason
